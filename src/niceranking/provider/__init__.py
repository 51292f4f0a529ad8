"""In-memory data provider."""

from .local_data_provider import LocalDataProvider, convert_input_to_rows

__all__ = ["LocalDataProvider", "convert_input_to_rows"]
