from .event_loop import fast_forward
from .exhaust_callbacks import exhaust_callbacks

__all__ = (
    "exhaust_callbacks",
    "fast_forward",
)
