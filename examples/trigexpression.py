import math

from gradgraph import bind, constant, cos, differentiate, evaluate, variable

if __name__ == "__main__":
    x = variable("x")
    y = variable("y")
    expr = cos(-(x * y))
    print(expr)

    bind(expr, {"x": constant(math.pi), "y": constant(0.25)})
    print(f"value: {evaluate(expr):f}")

    # values have to be computed before gradients can be
    differentiate(expr)
    print(f"dx: {x.grad:f}, dy: {y.grad:f}")
