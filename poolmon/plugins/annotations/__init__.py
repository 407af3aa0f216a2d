from .service import Annotation, query_annotations, store_annotation, store_range_annotation
from .tracker import StateChangeTracker

__all__ = ["Annotation", "StateChangeTracker", "query_annotations", "store_annotation", "store_range_annotation"]
