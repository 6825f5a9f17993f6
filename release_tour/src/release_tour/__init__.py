"""Release tour client: session controller for a versioned code tutorial."""

from release_tour.config import TourConfig
from release_tour.tour_session import RenderSnapshot, TourSession

__all__ = ["TourConfig", "TourSession", "RenderSnapshot"]
