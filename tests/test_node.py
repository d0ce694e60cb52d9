import math

import pytest

import gradgraph as gg
from gradgraph import Node, NodeContext, constant, variable
from gradgraph.errors import UnevaluatedNode, UnknownOperation
from gradgraph.ops import NodeKind, Op


def test_to_string():
    x = constant(1.0) + variable("x")
    assert x.to_string() == "ADD(Const(1.000000), Var(x))"
    assert str(x) == "ADD(Const(1.000000), Var(x))"


def test_factories():
    c = constant(3)
    assert c.kind is NodeKind.CONSTANT
    assert c.value == 3.0 and isinstance(c.value, float)
    assert c.inputs == []
    v = variable("x")
    assert v.kind is NodeKind.VARIABLE
    assert v.name == "x"
    assert v.value is None
    assert v.inputs == []


def test_derived_operations_are_built_from_primitives():
    x, y = variable("x"), variable("y")
    assert (x - y).to_string() == "ADD(Var(x), NEGATE(Var(y)))"
    assert (x / y).to_string() == "MUL(Var(x), POW(Var(y), Const(-1.000000)))"
    assert (-x).to_string() == "NEGATE(Var(x))"
    assert (x**2).to_string() == "POW(Var(x), Const(2.000000))"


def test_scalar_operands_are_wrapped_on_both_sides():
    x = variable("x")
    assert (x + 2).to_string() == "ADD(Var(x), Const(2.000000))"
    assert (2 + x).to_string() == "ADD(Const(2.000000), Var(x))"
    assert (2 * x).to_string() == "MUL(Const(2.000000), Var(x))"
    assert (2 - x).to_string() == "ADD(Const(2.000000), NEGATE(Var(x)))"
    assert (1 / x).to_string() == "MUL(Const(1.000000), POW(Var(x), Const(-1.000000)))"
    assert (2**x).to_string() == "POW(Const(2.000000), Var(x))"


def test_function_forms():
    x = variable("x")
    assert gg.sin(x).to_string() == "SIN(Var(x))"
    assert gg.cos(x).to_string() == "COS(Var(x))"
    assert gg.tan(x).to_string() == "TAN(Var(x))"
    assert gg.tanh(x).to_string() == "TANH(Var(x))"
    assert gg.exp(x).to_string() == "EXP(Var(x))"
    assert gg.ln(x).to_string() == "LN(Var(x))"
    assert x.ln().to_string() == "LN(Var(x))"
    assert gg.power(x, 3).to_string() == "POW(Var(x), Const(3.000000))"
    assert gg.sub(1, x).to_string() == "ADD(Const(1.000000), NEGATE(Var(x)))"


def test_eager_forward_values():
    a, b = constant(2.0), constant(3.0)
    assert (a + b).value == 5.0
    assert (a - b).value == -1.0
    assert (a * b).value == 6.0
    assert (a / b).value == pytest.approx(2.0 / 3.0)
    assert (a**b).value == 8.0
    assert gg.sin(a).value == pytest.approx(math.sin(2.0))
    assert gg.ln(b).value == pytest.approx(math.log(3.0))
    assert gg.sigmoid(a).value == pytest.approx(1 / (1 + math.exp(-2.0)))


def test_values_stay_unknown_above_unbound_variables():
    x = variable("x")
    expr = gg.cos(x * 2) + 1
    assert expr.value is None
    assert expr.inputs[1].value == 1.0


def test_construction_does_not_mutate_inputs():
    a, b = constant(2.0), constant(3.0)
    a * b
    gg.exp(a)
    assert a.value == 2.0 and a.inputs == [] and a.grad == 0.0
    assert b.value == 3.0 and b.inputs == [] and b.kind is NodeKind.CONSTANT


def test_operation_nodes():
    a, b = constant(2.0), constant(3.0)
    product = a * b
    assert product.kind is NodeKind.BINARY
    assert product.op is Op.MUL
    assert product.inputs[0] is a and product.inputs[1] is b
    negated = -a
    assert negated.kind is NodeKind.UNARY
    assert negated.inputs == [a]


def test_nodes_hash_by_identity():
    a, b = constant(1.0), constant(1.0)
    assert len({a, b}) == 2
    assert a != b


def test_invalid_nodes_are_rejected():
    with pytest.raises(AssertionError):
        Node(op=Op.ADD, inputs=[constant(1.0)])
    with pytest.raises(AssertionError):
        Node(3.0, inputs=[constant(1.0)])
    with pytest.raises(AssertionError):
        Node(kind=NodeKind.CONSTANT)
    with pytest.raises(UnknownOperation):
        Node(op="ADD", inputs=[constant(1.0), constant(2.0)])
    with pytest.raises(TypeError):
        constant(1.0) + "x"


def test_float_and_repr():
    c = constant(2.5)
    assert float(c) == 2.5
    assert repr(c) == "Node(Const, value=2.5, grad=0.0)"
    x = variable("x")
    assert repr(x) == "Node(Var(x), value=None, grad=0.0)"
    with pytest.raises(UnevaluatedNode):
        float(x + 1)


def test_set_value_and_grad_helpers():
    c = constant(1.0)
    c.set_value(4)
    assert c.value == 4.0
    c.seed_grad(1)
    assert c.grad == 1.0
    c.zero_grad()
    assert c.grad == 0.0
    with pytest.raises(AssertionError):
        c.set_value("4")


def test_save_and_load(tmp_path):
    path = tmp_path / "graph.pkl"
    x = variable("x")
    expr = gg.sin(x) * x
    with open(path, "wb") as f:
        expr.save(f)
        constant(7.0).save(f)

    loaded = Node.load(str(path), limit=1)
    assert isinstance(loaded, Node)
    assert loaded.to_string() == "MUL(SIN(Var(x)), Var(x))"
    loaded_x = loaded.inputs[1]
    assert loaded.inputs[0].inputs[0] is loaded_x

    loaded.bind({"x": 0.5})
    loaded.evaluate()
    loaded.differentiate()
    assert loaded_x.grad == pytest.approx(math.cos(0.5) * 0.5 + math.sin(0.5))
    # the saved graph is untouched
    assert x.kind is NodeKind.VARIABLE

    both = list(Node.load(str(path)))
    assert len(both) == 2
    assert both[1].value == 7.0


def test_node_context_records_nodes():
    with NodeContext() as context:
        x = variable("x")
        y = constant(2.0)
        expr = x * y
    outside = constant(1.0)
    assert context.nodes == [x, y, expr]
    assert outside not in context.nodes
    assert len(context) == 3
    assert context.variables() == [x]
    assert NodeContext.current_context is None


def test_node_context_recompute():
    with NodeContext() as context:
        a = constant(2.0)
        b = constant(3.0)
        expr = a * b + a
    assert expr.value == 8.0
    a.set_value(1.0)
    context.recompute()
    assert expr.value == 4.0


def test_node_context_nesting():
    with NodeContext() as outer:
        a = constant(1.0)
        with NodeContext() as inner:
            b = constant(2.0)
        c = constant(3.0)
    assert outer.nodes == [a, c]
    assert inner.nodes == [b]


def test_node_context_save_and_load(tmp_path):
    path = str(tmp_path / "context.pkl")
    with NodeContext() as context:
        x = constant(0.3)
        gg.tanh(x)
    context.save(path)
    loaded = NodeContext.load(path)
    assert len(loaded) == 2
    assert loaded.nodes[1].inputs[0] is loaded.nodes[0]
    assert loaded.nodes[1].value == pytest.approx(math.tanh(0.3))
