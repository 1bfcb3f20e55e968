from admin_analytics.models.document import Document

__all__ = ["Document"]
