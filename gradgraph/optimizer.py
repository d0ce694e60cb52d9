"""
Graph-rewrite passes run on an expression graph before it is evaluated or differentiated.

Every pass rewrites the graph in place and returns its root, so references held outside the
pipeline stay valid and see the rewritten state.

Passes do not commute. With `merge_constants=True`, CSE followed by folding merges duplicate
constant subexpressions such as two separately built `3 * 4` into one MUL node and folds it once,
while folding followed by CSE first turns each copy into its own constant 12 and then merges the
leaves. With the default `merge_constants=False`, folding followed by CSE leaves the folded copies
apart, and CSE followed by folding merges only copies that already share their leaves.

`CommonSubexpressionElimination` changes how many parents a node has, so it must run before
`gradgraph.node.differentiate`, never between evaluation and differentiation of the same values.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod

from gradgraph import ops
from gradgraph.node import Node, NodeContext
from gradgraph.ops import NodeKind, Op
from gradgraph.traversal import postorder, reachable

logger = logging.getLogger(__name__)

COMMUTATIVE_OPS = frozenset({Op.ADD, Op.MUL})


class Pass(ABC):
    """
    `gradgraph.optimizer.Pass` is the abstract base class of graph-to-graph rewrites.
    """

    @abstractmethod
    def apply(self, root: Node) -> Node: ...

    def __call__(self, root: Node) -> Node:
        return self.apply(root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ConstantFolding(Pass):
    """
    Replaces every subgraph that depends on constants only with a single constant.

    Marking runs over the whole graph before folding starts, since folding is driven by the marks.
    """

    def apply(self, root: Node) -> Node:
        marked = self.mark(root)
        folded = self.fold(root)
        logger.debug("ConstantFolding: marked %d node(s), folded %d", marked, folded)
        return root

    def mark(self, root: Node) -> int:
        """
        Relabels as CONSTANT each operation node whose inputs are all constant, keeping its tag for folding.

        Returns:
            int: The number of nodes relabelled.
        """
        count = 0
        for node in postorder(root):
            if node.kind is NodeKind.CONSTANT:
                continue
            if node.inputs and all(
                subexpr.kind is NodeKind.CONSTANT for subexpr in node.inputs
            ):
                node.kind = NodeKind.CONSTANT
                count += 1
        return count

    def fold(self, root: Node) -> int:
        """
        Evaluates each marked node from its inputs, then drops its input edges and tag.

        Returns:
            int: The number of nodes folded.
        """
        count = 0
        for node in postorder(root):
            if node.kind is not NodeKind.CONSTANT or not node.inputs:
                continue
            node.value = ops.evaluate_op(
                node.op, [subexpr.value for subexpr in node.inputs]
            )
            node.inputs.clear()
            node.op = None
            count += 1
        return count


class DeadCodeElimination(Pass):
    """
    Computes the nodes reachable from the root and drops the rest from a `NodeContext`.

    Args:
        context (gradgraph.node.NodeContext, optional): The store to prune. Defaults to the active context, if any.
    """

    def __init__(self, context: NodeContext | None = None) -> None:
        self.context = context
        self.reachable: set[Node] = set()
        self.removed: list[Node] = []

    def apply(self, root: Node) -> Node:
        self.reachable = reachable(root)
        context = self.context if self.context is not None else NodeContext.current_context
        self.removed = context.prune(self.reachable) if context is not None else []
        logger.debug(
            "DeadCodeElimination: %d reachable node(s), %d removed",
            len(self.reachable),
            len(self.removed),
        )
        return root


class CommonSubexpressionElimination(Pass):
    """
    Merges structurally identical subexpressions into one shared node.

    Two operation nodes are identical when they have the same tag and, after their own inputs were
    merged, the same input nodes by identity (in any order for ADD and MUL). Variables are never
    merged. Constants are merged by value only with `merge_constants=True`, because callers may
    read the gradient of a constant they hold.

    Args:
        merge_constants (bool): Whether equal-valued constants are merged too. Defaults to False.
    """

    def __init__(self, merge_constants: bool = False) -> None:
        self.merge_constants = merge_constants
        self.merged = 0

    def _key(self, node: Node):
        if node.kind is NodeKind.VARIABLE:
            return None
        if node.kind is NodeKind.CONSTANT:
            if node.inputs or not self.merge_constants:
                return None
            # 0.0 == -0.0, the sign keeps them apart
            return (NodeKind.CONSTANT, node.value, math.copysign(1.0, node.value))
        inputs = node.inputs
        if node.op in COMMUTATIVE_OPS:
            inputs = sorted(inputs, key=id)
        return (node.op, tuple(inputs))

    def apply(self, root: Node) -> Node:
        canonical = {}
        replacement = {}
        for node in postorder(root):
            node.inputs[:] = [replacement.get(subexpr, subexpr) for subexpr in node.inputs]
            key = self._key(node)
            if key is None:
                continue
            representative = canonical.setdefault(key, node)
            if representative is not node:
                replacement[node] = representative
        self.merged = len(replacement)
        logger.debug("CommonSubexpressionElimination: merged %d node(s)", self.merged)
        return replacement.get(root, root)


def run_pipeline(root: Node, passes: list[Pass]) -> Node:
    """
    Applies `passes` left to right, feeding each pass the root returned by the previous one.

    Args:
        root (gradgraph.node.Node): The root of the graph to rewrite.
        passes (list[gradgraph.optimizer.Pass]): The passes, in the order they should run.

    Returns:
        gradgraph.node.Node: The root returned by the last pass.
    """
    new_graph = root
    for graph_pass in passes:
        new_graph = graph_pass(new_graph)
    logger.info("run_pipeline: applied %s", [repr(graph_pass) for graph_pass in passes])
    return new_graph
