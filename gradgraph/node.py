from __future__ import annotations

import itertools
import logging
import pickle
from typing import Any, Generator, Mapping

from gradgraph import config, ops
from gradgraph.errors import (
    BackpropOnUnboundVariable,
    UnboundVariable,
    UnevaluatedNode,
    VariableNotFound,
)
from gradgraph.ops import NodeKind, Op
from gradgraph.traversal import postorder, topological_order, traverse

logger = logging.getLogger(__name__)


class Node:

    """
    `gradgraph.Node` is a vertex in an expression graph, containing its value and gradient.

    A node is either a constant, a named variable waiting to be bound, or an operation over the
    nodes in `inputs`. Nodes can be shared by several parents, so the graph is a DAG, and they
    compare and hash by identity.

    Attributes
    ----------
    value (float | None): The last computed (or literal) value, `None` while unknown.
    kind (gradgraph.ops.NodeKind): Whether the node is a constant, a variable, or a unary/binary operation.
    op (gradgraph.ops.Op | None): The operation tag of an operation node.
    name (str | None): The binding key of a variable node, kept after binding for diagnostics.
    inputs (list[gradgraph.Node]): The operands of an operation node, in order.
    grad (float): The gradient accumulated during the last differentiation pass.
    """

    def __init__(
        self,
        value: int | float | None = None,
        op: Op | None = None,
        inputs: list[Node] | None = None,
        name: str | None = None,
        kind: NodeKind | None = None,
    ) -> None:
        if kind is None:
            if op is not None:
                kind = ops.kind_of(op)
            elif name is not None:
                kind = NodeKind.VARIABLE
            else:
                kind = NodeKind.CONSTANT
        inputs = list(inputs) if inputs else []
        if kind in (NodeKind.CONSTANT, NodeKind.VARIABLE):
            assert not inputs, f"A {kind.name} node takes no inputs, got {len(inputs)}"
        else:
            assert len(inputs) == ops.arity(op), (
                f"{op.name} takes {ops.arity(op)} input(s), got {len(inputs)}"
            )
        if kind is NodeKind.CONSTANT:
            assert value is not None, "A constant node needs a value"
        if kind is NodeKind.VARIABLE:
            assert name, "A variable node needs a name"

        self.value = None if value is None else float(value)
        self.kind = kind
        self.op = op
        self.name = name
        self.inputs = inputs
        self.grad = 0.0
        if NodeContext.current_context is not None:
            NodeContext.current_context.add_node(self)

    def __add__(self, other: int | float | Node) -> Node:
        return add(self, other)

    def __radd__(self, other: int | float) -> Node:
        return add(other, self)

    def __sub__(self, other: int | float | Node) -> Node:
        return sub(self, other)

    def __rsub__(self, other: int | float) -> Node:
        return sub(other, self)

    def __mul__(self, other: int | float | Node) -> Node:
        return mul(self, other)

    def __rmul__(self, other: int | float) -> Node:
        return mul(other, self)

    def __truediv__(self, other: int | float | Node) -> Node:
        return div(self, other)

    def __rtruediv__(self, other: int | float) -> Node:
        return div(other, self)

    def __pow__(self, index: int | float | Node) -> Node:
        return power(self, index)

    def __rpow__(self, base: int | float) -> Node:
        return power(base, self)

    def __neg__(self) -> Node:
        return negate(self)

    def __repr__(self) -> str:
        value = None if self.value is None else round(self.value, 4)
        return f"{type(self).__name__}({self.label()}, value={value}, grad={round(self.grad, 4)})"

    def __str__(self) -> str:
        return self.to_string()

    def __float__(self) -> float:
        if self.value is None:
            raise UnevaluatedNode(self)
        return self.value

    def label(self) -> str:
        if self.kind is NodeKind.VARIABLE:
            return f"Var({self.name})"
        if self.kind is NodeKind.CONSTANT:
            return "Const"
        return self.op.name

    def to_string(self) -> str:
        """
        Debug form of the expression below this node, e.g. `ADD(Const(1.000000), Var(x))`.
        """
        if self.kind is NodeKind.VARIABLE:
            return f"Var({self.name})"
        if self.kind is NodeKind.CONSTANT:
            return f"Const({self.value:f})" if self.value is not None else "Const(None)"
        return f"{self.op.name}({', '.join(node.to_string() for node in self.inputs)})"

    @property
    def is_constant(self) -> bool:
        return self.kind is NodeKind.CONSTANT

    @property
    def is_variable(self) -> bool:
        return self.kind is NodeKind.VARIABLE

    def sin(self) -> Node:
        return sin(self)

    def cos(self) -> Node:
        return cos(self)

    def tan(self) -> Node:
        return tan(self)

    def tanh(self) -> Node:
        return tanh(self)

    def exp(self) -> Node:
        return exp(self)

    def ln(self) -> Node:
        return ln(self)

    def negate(self) -> Node:
        return negate(self)

    def sigmoid(self) -> Node:
        return sigmoid(self)

    def compute(self) -> None:
        """
        Recomputes the value of an operation node from the current values of its inputs.
        """
        if self.kind is NodeKind.CONSTANT:
            return
        if self.kind is NodeKind.VARIABLE:
            raise UnboundVariable(self.name)
        values = []
        for node in self.inputs:
            if node.value is None:
                if node.kind is NodeKind.VARIABLE:
                    raise UnboundVariable(node.name)
                raise UnevaluatedNode(node)
            values.append(node.value)
        self.value = ops.evaluate_op(self.op, values)

    def propagate_grad(self) -> None:
        """
        Adds this node's gradient, scaled by the local derivative, into each input's gradient.
        """
        if self.kind is NodeKind.CONSTANT:
            return
        if self.kind is NodeKind.VARIABLE:
            raise BackpropOnUnboundVariable(self.name)
        values = [node.value for node in self.inputs]
        contributions = ops.local_gradients(self.op, values, self.grad)
        for node, contribution in zip(self.inputs, contributions):
            node.grad += contribution

    def zero_grad(self) -> None:
        self.grad = 0.0

    def seed_grad(self, seed: int | float) -> None:
        self.grad = float(seed)

    def set_value(self, new_value: int | float) -> None:
        assert isinstance(new_value, (float, int))
        self.value = float(new_value)

    def evaluate(self, strategy: str | None = None) -> float:
        return evaluate(self, strategy)

    def bind(self, values: Mapping[str, Node | int | float]) -> Node:
        return bind(self, values)

    def differentiate(self) -> None:
        differentiate(self)

    def save(self, pickle_instance: Any) -> None:
        """
        Saves a `gradgraph.node.Node`, together with the graph below it, given a binary file `open()` handle.

        Passing an instance of the file handle allows for repeated insertion and saving of nodes to a `.pkl` file.

        Args:
            pickle_instance (_io.BufferedWriter): a `.pkl` file handle with write access in binary.
        """

        assert pickle_instance.writable()

        pickle.dump(self, pickle_instance)

    @staticmethod
    def load(
        path: str, limit: int | None = None
    ) -> Node | Generator | itertools.chain[Node]:
        """
        Loads a single `gradgraph.node.Node()` or a generator of `gradgraph.node.Node()`.

        Args:
            path (str): The file path from which to load the node(s).
            limit (int, optional): Loads the first n items from the pickle file.

        Returns:
            Union[Node, Generator[Node, None, None]]: The loaded node(s).
        """

        def node_generator():
            with open(path, "rb") as f:
                count = 0
                while limit is None or count < limit:
                    try:
                        data = pickle.load(f)
                    except EOFError:
                        break
                    if isinstance(data, Node):
                        yield data
                        count += 1
                    elif isinstance(data, list) and all(
                        isinstance(item, Node) for item in data
                    ):
                        for item in data:
                            if limit is not None and count >= limit:
                                return
                            yield item
                            count += 1
                    else:
                        raise ValueError(
                            "All items must be of type `gradgraph.node.Node` or a list of `Node`."
                        )

        generator = node_generator()
        first_node = next(generator, None)

        if first_node is None:
            return generator

        if limit == 1:
            return first_node

        return itertools.chain([first_node], generator)


class NodeContext:

    """
    `gradgraph.NodeContext` records every node created while it is active.

    The recorded list is the backing store that `gradgraph.optimizer.DeadCodeElimination` prunes.
    """

    current_context = None

    def __init__(self) -> None:
        self.nodes = []

    def __enter__(self) -> NodeContext:
        self.prev_context = NodeContext.current_context
        NodeContext.current_context = self
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        NodeContext.current_context = self.prev_context

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(self, node: Node) -> None:
        """
        Adds a node to the nodes stored in `gradgraph.NodeContext.nodes`.

        Args:
            node (gradgraph.Node): The node object to be added to the context.
        """

        self.nodes.append(node)

    def recompute(self) -> None:
        """
        Recomputes all nodes within the NodeContext, in creation order.
        """
        forward(self.nodes)

    def variables(self) -> list[Node]:
        """
        Returns the variable nodes that are still waiting to be bound.
        """
        return [node for node in self.nodes if node.kind is NodeKind.VARIABLE]

    def prune(self, keep: set[Node]) -> list[Node]:
        """
        Drops every node not in `keep` from the context.

        Args:
            keep (set[gradgraph.Node]): The nodes to retain.

        Returns:
            list[gradgraph.Node]: The nodes that were dropped.
        """
        removed = [node for node in self.nodes if node not in keep]
        self.nodes = [node for node in self.nodes if node in keep]
        return removed

    def __repr__(self) -> str:
        return str([node for node in self.nodes])

    def save(self, path: str) -> None:
        """
        Saves the `gradgraph.node.NodeContext()` to a `.pkl` file.

        Args:
            path (str): The file path where the `gradgraph.node.NodeContext()` should be saved.
        """
        with open(path, "wb") as f:
            pickle.dump(self, f)

    @staticmethod
    def load(path: str) -> Any:
        """
        Loads a `gradgraph.node.NodeContext()` from a `.pkl` file.

        Args:
            path (str): The file path from which to load the `gradgraph.node.NodeContext()`.

        Returns:
            gradgraph.node.NodeContext(): The loaded context.
        """
        with open(path, "rb") as f:
            return pickle.load(f)


def constant(value: int | float) -> Node:
    return Node(value, kind=NodeKind.CONSTANT)


def variable(name: str) -> Node:
    return Node(name=name, kind=NodeKind.VARIABLE)


def as_node(operand: int | float | Node) -> Node:
    """
    Returns `operand` if it is a node, otherwise wraps the scalar in a constant node.
    """
    if isinstance(operand, Node):
        return operand
    if isinstance(operand, (int, float)):
        return constant(operand)
    raise TypeError(
        f"Operands must be a gradgraph.node.Node, int or float, not {type(operand).__name__}"
    )


def _unary(op: Op, operand: int | float | Node) -> Node:
    node = as_node(operand)
    value = None
    if node.value is not None:
        value = ops.evaluate_unary(op, node.value)
    return Node(value, op=op, inputs=[node])


def _binary(op: Op, left: int | float | Node, right: int | float | Node) -> Node:
    left, right = as_node(left), as_node(right)
    value = None
    if left.value is not None and right.value is not None:
        value = ops.evaluate_binary(op, left.value, right.value)
    return Node(value, op=op, inputs=[left, right])


def add(left: int | float | Node, right: int | float | Node) -> Node:
    return _binary(Op.ADD, left, right)


def sub(left: int | float | Node, right: int | float | Node) -> Node:
    """
    Subtraction, built as `left + (-right)`.
    """
    return add(left, negate(right))


def mul(left: int | float | Node, right: int | float | Node) -> Node:
    return _binary(Op.MUL, left, right)


def div(left: int | float | Node, right: int | float | Node) -> Node:
    """
    Division, built as `left * right ** -1`.
    """
    return mul(left, power(right, -1))


def power(base: int | float | Node, index: int | float | Node) -> Node:
    """
    Raises `base` to the power of `index`.

    Args:
        base: The base of the power.
        index: The exponent of the power.

    Returns:
        gradgraph.node.Node: A POW node whose inputs are `[base, index]`.
    """
    return _binary(Op.POW, base, index)


def negate(node: int | float | Node) -> Node:
    return _unary(Op.NEGATE, node)


def sin(node: int | float | Node) -> Node:
    """
    Performs the Sine function to given `gradgraph.node.Node`.

    Args:
        node: The input node for Sine.

    Returns:
        gradgraph.node.Node: A SIN node with the value set to the output of the Sine function.
    """
    return _unary(Op.SIN, node)


def cos(node: int | float | Node) -> Node:
    """
    Performs the Cosine function to given `gradgraph.node.Node`.

    Args:
        node: The input node for Cosine.

    Returns:
        gradgraph.node.Node: A COS node with the value set to the output of the Cosine function.
    """
    return _unary(Op.COS, node)


def tan(node: int | float | Node) -> Node:
    """
    Performs the Tangent function to given `gradgraph.node.Node`.

    Args:
        node: The input node for Tangent.

    Returns:
        gradgraph.node.Node: A TAN node with the value set to the output of the Tangent function.
    """
    return _unary(Op.TAN, node)


def tanh(node: int | float | Node) -> Node:
    """
    Performs the Tanh (hyperbolic tangent) function to given `gradgraph.node.Node`.

    Args:
        node: The input node for Tanh.

    Returns:
        gradgraph.node.Node: A TANH node with the value set to the output of the Tanh function.
    """
    return _unary(Op.TANH, node)


def exp(node: int | float | Node) -> Node:
    """
    Performs the exponentiation function to given `gradgraph.node.Node`.

    Args:
        node: The input node for exponentiation.

    Returns:
        gradgraph.node.Node: An EXP node with the value set to the output of the exponentiation function.
    """
    return _unary(Op.EXP, node)


def ln(node: int | float | Node) -> Node:
    """
    Performs the natural logarithm to given `gradgraph.node.Node`.

    Args:
        node: The input node for the natural logarithm.

    Returns:
        gradgraph.node.Node: An LN node with the value set to the output of the natural logarithm.
    """
    return _unary(Op.LN, node)


def sigmoid(node: int | float | Node) -> Node:
    """
    Builds the Sigmoid function `1 / (1 + exp(-node))` out of the primitive operations.

    Args:
        node: The input node for Sigmoid.

    Returns:
        gradgraph.node.Node: The root of the Sigmoid subgraph.
    """
    return 1 / (1 + exp(-as_node(node)))


def _evaluate_recursive(node: Node, done: set) -> float:
    if node.kind is NodeKind.CONSTANT:
        return node.value
    if node.kind is NodeKind.VARIABLE:
        raise UnboundVariable(node.name)
    if node in done:
        return node.value
    values = [_evaluate_recursive(child, done) for child in node.inputs]
    node.value = ops.evaluate_op(node.op, values)
    done.add(node)
    return node.value


def _evaluate_iterative(node: Node) -> float:
    for subexpr in postorder(node):
        subexpr.compute()
    return node.value


def evaluate(node: Node, strategy: str | None = None) -> float:
    """
    Computes the value of `node` from the values of the graph below it, storing every intermediate value on its node.

    Args:
        node (gradgraph.node.Node): The root to evaluate.
        strategy (str, optional): `"recursive"` or `"iterative"`. Defaults to the `GRADGRAPH_EVALUATION` setting.

    Returns:
        float: The value of `node`.

    Raises:
        gradgraph.errors.UnboundVariable: If a variable below `node` has not been bound.
    """
    strategy = config.evaluation_strategy(strategy)
    if strategy == "iterative":
        return _evaluate_iterative(node)
    return _evaluate_recursive(node, set())


def bind(root: Node, values: Mapping[str, Node | int | float]) -> Node:
    """
    Turns every variable below `root` into a constant holding the value bound to its name.

    All names are checked before any node is changed, so a failing bind leaves the graph as it was.
    Entries of `values` that no variable refers to are ignored.

    Args:
        root (gradgraph.node.Node): The root of the graph to bind.
        values (Mapping[str, Node | int | float]): Values keyed by variable name, as numbers or valued nodes.

    Returns:
        gradgraph.node.Node: `root`.

    Raises:
        gradgraph.errors.VariableNotFound: If a variable's name is missing from `values`.
    """
    variables = [
        node for node in traverse(root) if node.kind is NodeKind.VARIABLE
    ]
    missing = sorted({node.name for node in variables if node.name not in values})
    if missing:
        raise VariableNotFound(missing)

    resolved = {}
    for name in {node.name for node in variables}:
        bound = values[name]
        if isinstance(bound, Node):
            if bound.value is None:
                raise UnboundVariable(bound.name)
            bound = bound.value
        resolved[name] = float(bound)

    for node in variables:
        node.kind = NodeKind.CONSTANT
        node.value = resolved[node.name]
    logger.debug("bind: bound %d variable node(s) to %s", len(variables), sorted(resolved))
    return root


def differentiate(root: Node) -> None:
    """
    Performs reverse-mode differentiation, leaving d(root)/d(node) in `grad` of every node below `root`.

    Nodes are processed in topological order, so a node shared by several parents has received the
    contributions of all of them before it passes its own gradient on.

    Args:
        root (gradgraph.node.Node): An evaluated root.

    Raises:
        gradgraph.errors.BackpropOnUnboundVariable: If a variable below `root` has not been bound.
        gradgraph.errors.UnevaluatedNode: If an operation node below `root` has no value yet.
    """
    sorted_nodes = topological_order(root)

    for node in sorted_nodes:
        if node.kind is NodeKind.VARIABLE:
            raise BackpropOnUnboundVariable(node.name)
        if node.value is None:
            raise UnevaluatedNode(node)

    for node in sorted_nodes:
        node.zero_grad()

    root.seed_grad(1)

    for node in sorted_nodes:
        node.propagate_grad()
    logger.debug("differentiate: propagated through %d node(s)", len(sorted_nodes))


def forward(nodes: list[Node]) -> None:
    """
    Recomputes every node of a list, in list order.

    Args:
        nodes (list[Node]): Nodes ordered so that inputs come before the nodes using them, e.g. `NodeContext.nodes`.
    """
    for node in nodes:
        node.compute()


def zero_grad(nodes: list[Node]) -> None:
    """
    Zeroes the gradients of all nodes in the list of `gradgraph.node.Node`.

    Args:
        nodes: The list of nodes to zero gradients.
    """
    for node in nodes:
        node.zero_grad()
