"""Repository exports."""

from .node_types_repo import NodeTypeRegistry

__all__ = ["NodeTypeRegistry"]
