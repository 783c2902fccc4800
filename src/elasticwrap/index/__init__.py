"""Index handles and bulk write mode."""

from elasticwrap.index.bulk import BufferedMode, BulkBuffer, DirectMode
from elasticwrap.index.handle import IndexHandle, open_index

__all__ = ["BufferedMode", "BulkBuffer", "DirectMode", "IndexHandle", "open_index"]
