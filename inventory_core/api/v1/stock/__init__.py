"""Stock API endpoints"""

from . import positions, movements, batches, transfers

__all__ = ["positions", "movements", "batches", "transfers"]
