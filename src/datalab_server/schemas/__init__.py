from .exporter import ExportMessage, ExportOptions, ExportPair
from .importer import ImportConversationsRequest, ImportItemsRequest, ImportResponse

__all__ = [
    "ExportMessage",
    "ExportOptions",
    "ExportPair",
    "ImportConversationsRequest",
    "ImportItemsRequest",
    "ImportResponse",
]
