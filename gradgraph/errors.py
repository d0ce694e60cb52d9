from __future__ import annotations


class GradGraphError(Exception):
    """
    Base class for every error raised by `gradgraph`.
    """


class UnknownOperation(GradGraphError):
    """
    The operation catalog was given a tag it cannot evaluate or differentiate.
    """

    def __init__(self, op) -> None:
        self.op = op
        super().__init__(f"Unknown operation {op!r}")


class UnboundVariable(GradGraphError):
    """
    Evaluation reached a variable node that has not been bound to a value.
    """

    def __init__(self, name: str | None) -> None:
        self.name = name
        super().__init__(
            f"Cannot evaluate variable {name!r} without applying a value to it"
        )


class BackpropOnUnboundVariable(UnboundVariable):
    """
    Differentiation reached a variable node that has not been bound to a value.
    """

    def __init__(self, name: str | None) -> None:
        super().__init__(name)
        self.args = (
            f"Cannot backprop on variable {name!r} without applying a value to it",
        )


class VariableNotFound(GradGraphError):
    """
    A binding map is missing names of variables present in the graph.
    """

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(
            f"Variable(s) {', '.join(names)} not found in provided values"
        )


class UnevaluatedNode(GradGraphError):
    """
    Differentiation reached an operation node whose value was never computed.
    """

    def __init__(self, node) -> None:
        self.node = node
        super().__init__(
            f"{node!r} has no value, evaluate the graph before differentiating"
        )


class CyclicGraph(GradGraphError):
    """
    A walk over the inputs of a node came back to a node still being visited.
    """

    def __init__(self, node) -> None:
        self.node = node
        super().__init__(f"Cycle detected at {node!r}")
