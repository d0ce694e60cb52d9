from gradgraph import bind, differentiate, evaluate, sin, tanh, variable
from gradgraph.graphutils import visualise_graph

if __name__ == "__main__":
    x = variable("x")
    y = variable("y")
    shared = x * y
    expr = tanh(shared) + sin(shared) * x

    bind(expr, {"x": 0.7, "y": -1.3})
    evaluate(expr)
    differentiate(expr)

    visualise_graph(expr)
