"""Protocol interfaces for swappable implementations.

Protocols enable:
- Swapping the model provider or cache backend without touching services
- Unit testing with fake implementations
"""

from .generative_model import GenerativeModel, TextStream
from .response_cache import ResponseCache

__all__ = [
    "GenerativeModel",
    "ResponseCache",
    "TextStream",
]
