class ExportError(Exception):
    """Base class for export failures."""


class ExportConfigError(ExportError, ValueError):
    """The requested export type cannot be produced for the selected dataset."""


class DatasetNotFoundError(ExportError, LookupError):
    def __init__(self, dataset_id: int) -> None:
        super().__init__(f"Dataset {dataset_id} not found")
        self.dataset_id = dataset_id


class ExportStreamError(ExportError):
    """Storage or sink failure after the first record was written."""
