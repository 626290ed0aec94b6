from datalab_server.models.conversations import Conversation, ConversationMessage
from datalab_server.models.dataset_items import DatasetItem
from datalab_server.models.datasets import Dataset, DatasetKind

__all__ = [
    "Conversation",
    "ConversationMessage",
    "Dataset",
    "DatasetItem",
    "DatasetKind",
]
