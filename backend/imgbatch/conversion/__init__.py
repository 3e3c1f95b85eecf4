from .service import ConversionService
from .models import ConvertedImage, PendingImage, TargetFormat

__all__ = ["ConversionService", "ConvertedImage", "PendingImage", "TargetFormat"]
