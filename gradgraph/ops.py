from __future__ import annotations

import enum
import math

from gradgraph.errors import UnknownOperation


class NodeKind(enum.Enum):
    CONSTANT = "Const"
    VARIABLE = "Var"
    UNARY = "Unary"
    BINARY = "Binary"


class Op(enum.Enum):
    # unary
    NEGATE = "NEGATE"
    SIN = "SIN"
    COS = "COS"
    EXP = "EXP"
    TAN = "TAN"
    TANH = "TANH"
    LN = "LN"
    # binary
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    POW = "POW"


def _exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _pow(base: float, exponent: float) -> float:
    # IEEE results where math.pow raises on overflow or a zero base
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base > 0 or exponent % 2 == 0:
            return math.inf
        return -math.inf
    except ValueError:
        if base == 0 and exponent < 0:
            return math.inf
        raise


UNARY_FUNCTIONS = {
    Op.NEGATE: lambda x: -x,
    Op.SIN: math.sin,
    Op.COS: math.cos,
    Op.EXP: _exp,
    Op.TAN: math.tan,
    Op.TANH: math.tanh,
    Op.LN: math.log,
}

BINARY_FUNCTIONS = {
    Op.ADD: lambda x, y: x + y,
    Op.SUB: lambda x, y: x - y,
    Op.MUL: lambda x, y: x * y,
    Op.DIV: lambda x, y: x / y,
    Op.POW: _pow,
}


def _pow_exponent_grad(base: float, exponent: float, grad: float) -> float:
    # d(a^b)/db = ln(a) * a^b, real only for a > 0
    if base > 0:
        return math.log(base) * _pow(base, exponent) * grad
    if base == 0:
        return 0.0
    return math.nan


# Each rule maps (input values..., incoming grad) to one contribution per input.
UNARY_GRADIENTS = {
    Op.NEGATE: lambda x, g: (-g,),
    Op.SIN: lambda x, g: (math.cos(x) * g,),
    Op.COS: lambda x, g: (-math.sin(x) * g,),
    Op.EXP: lambda x, g: (_exp(x) * g,),
    Op.TAN: lambda x, g: (g / (math.cos(x) ** 2),),
    Op.TANH: lambda x, g: ((1 - math.tanh(x) ** 2) * g,),
    Op.LN: lambda x, g: (g / x,),
}

BINARY_GRADIENTS = {
    Op.ADD: lambda x, y, g: (g, g),
    Op.SUB: lambda x, y, g: (g, -g),
    Op.MUL: lambda x, y, g: (y * g, x * g),
    Op.DIV: lambda x, y, g: (g / y, -x * g / (y**2)),
    Op.POW: lambda x, y, g: (
        y * _pow(x, y - 1) * g,
        _pow_exponent_grad(x, y, g),
    ),
}


def is_unary(op) -> bool:
    return isinstance(op, Op) and op in UNARY_FUNCTIONS


def is_binary(op) -> bool:
    return isinstance(op, Op) and op in BINARY_FUNCTIONS


def arity(op) -> int:
    """
    Returns the number of inputs an operation takes.

    Raises:
        UnknownOperation: If `op` is neither unary nor binary.
    """
    if is_unary(op):
        return 1
    if is_binary(op):
        return 2
    raise UnknownOperation(op)


def kind_of(op) -> NodeKind:
    return NodeKind.UNARY if arity(op) == 1 else NodeKind.BINARY


def evaluate_unary(op, x: float) -> float:
    """
    Applies a unary operation to an already evaluated input.

    Args:
        op (gradgraph.ops.Op): One of the unary tags.
        x (float): The input value.

    Returns:
        float: The output value.
    """
    try:
        function = UNARY_FUNCTIONS[op]
    except (KeyError, TypeError):
        raise UnknownOperation(op) from None
    return function(x)


def evaluate_binary(op, x: float, y: float) -> float:
    """
    Applies a binary operation to two already evaluated inputs.

    Args:
        op (gradgraph.ops.Op): One of the binary tags.
        x (float): The left input value (the base for `Op.POW`).
        y (float): The right input value (the exponent for `Op.POW`).

    Returns:
        float: The output value.
    """
    try:
        function = BINARY_FUNCTIONS[op]
    except (KeyError, TypeError):
        raise UnknownOperation(op) from None
    return function(x, y)


def evaluate_op(op, values) -> float:
    if is_unary(op):
        return evaluate_unary(op, *values)
    return evaluate_binary(op, *values)


def local_gradients(op, values, grad: float) -> tuple[float, ...]:
    """
    Computes the contribution of an operation node's gradient to each of its inputs.

    Args:
        op (gradgraph.ops.Op): The tag of the operation node.
        values (Sequence[float]): The values of the node's inputs, in input order.
        grad (float): The gradient accumulated on the operation node.

    Returns:
        tuple[float, ...]: One contribution per input, in input order.
    """
    # nothing flows back, even through an infinite local derivative
    if grad == 0:
        return (0.0,) * arity(op)
    if is_unary(op):
        return UNARY_GRADIENTS[op](*values, grad)
    if is_binary(op):
        return BINARY_GRADIENTS[op](*values, grad)
    raise UnknownOperation(op)
