from .graph import graph as resume_screening_graph

__all__ = ["resume_screening_graph"]
