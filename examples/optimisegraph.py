import logging

from gradgraph import (
    CommonSubexpressionElimination,
    ConstantFolding,
    DeadCodeElimination,
    NodeContext,
    bind,
    constant,
    differentiate,
    evaluate,
    run_pipeline,
    sin,
    variable,
)

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    with NodeContext() as context:
        x = variable("x")
        expr = (x * constant(2.0)) * sin(x) + (constant(3.0) * constant(4.0)) * sin(x)
        unused = x + 1

    print(f"before: {expr} ({len(context)} nodes)")
    expr = run_pipeline(
        expr,
        [ConstantFolding(), CommonSubexpressionElimination(), DeadCodeElimination(context)],
    )
    print(f"after: {expr} ({len(context)} nodes)")

    bind(expr, {"x": 0.5})
    print(f"value: {evaluate(expr):f}")
    differentiate(expr)
    print(f"dx: {x.grad:f}")
