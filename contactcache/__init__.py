"""Email address to contact details cache with deterministic colors."""

from .cache import ContactCache, initialize
from .colors import color_for
from .models import ContactRecord

__all__ = ["ContactCache", "ContactRecord", "color_for", "initialize"]
