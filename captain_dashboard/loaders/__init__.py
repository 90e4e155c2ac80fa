"""Data ingestion loaders for uploaded shipment spreadsheets."""

from .shipments import LoadResult, load_shipments, parse_shipment_rows

__all__ = [
    "LoadResult",
    "load_shipments",
    "parse_shipment_rows",
]
