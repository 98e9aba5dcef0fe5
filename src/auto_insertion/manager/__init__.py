# Manager — CTA record storage and render-time chain publishing
from .manager import AutoInsertManager
from .repository import CTARepository

__all__ = ["AutoInsertManager", "CTARepository"]
