from types import SimpleNamespace

import pytest

import gradgraph as gg
from gradgraph import bind, differentiate, evaluate, variable

torch = pytest.importorskip("torch")


def expression(x, y, lib):
    return (
        lib.tanh(x * y)
        + lib.log(x) * lib.exp(-y) / (1 + lib.sin(x) ** 2)
        + y**x
        - lib.cos(x - y) / lib.tan(y)
    )


def test_gradients_match_torch_autograd():
    values = {"x": 1.7, "y": 0.6}

    x, y = variable("x"), variable("y")
    functions = SimpleNamespace(
        tanh=gg.tanh, log=gg.ln, exp=gg.exp, sin=gg.sin, cos=gg.cos, tan=gg.tan
    )
    root = expression(x, y, functions)
    bind(root, values)
    evaluate(root)
    differentiate(root)

    tx = torch.tensor(values["x"], dtype=torch.float64, requires_grad=True)
    ty = torch.tensor(values["y"], dtype=torch.float64, requires_grad=True)
    out = expression(tx, ty, torch)
    out.backward()

    assert root.value == pytest.approx(out.item())
    assert x.grad == pytest.approx(tx.grad.item())
    assert y.grad == pytest.approx(ty.grad.item())
