# Services package - External API integrations and pipeline steps
from app.services.catalog import TemplateCatalogService
from app.services.captions import CaptionService
from app.services.binder import bind_captions
from app.services.renderer import MemeRenderService

__all__ = [
    "TemplateCatalogService",
    "CaptionService",
    "bind_captions",
    "MemeRenderService",
]
