"""Network connectivity graph and rooted tree traversal."""

from mepnet.graph.connectivity import build_adjacency
from mepnet.graph.traversal import TraversalTree, TreeNode, choose_root

__all__ = ["TraversalTree", "TreeNode", "build_adjacency", "choose_root"]
