import logging

from . import config
from .errors import (
    BackpropOnUnboundVariable,
    CyclicGraph,
    GradGraphError,
    UnboundVariable,
    UnevaluatedNode,
    UnknownOperation,
    VariableNotFound,
)
from .node import (
    Node,
    NodeContext,
    add,
    bind,
    constant,
    cos,
    differentiate,
    div,
    evaluate,
    exp,
    forward,
    ln,
    mul,
    negate,
    power,
    sigmoid,
    sin,
    sub,
    tan,
    tanh,
    variable,
    zero_grad,
)
from .ops import NodeKind, Op
from .optimizer import (
    CommonSubexpressionElimination,
    ConstantFolding,
    DeadCodeElimination,
    Pass,
    run_pipeline,
)
from .traversal import TraversalType, reachable, topological_order, traverse

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_level = config.log_level()
if _level is not None:
    logger.setLevel(_level)
