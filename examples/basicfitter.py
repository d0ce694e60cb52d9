# Fits a polynomial (ax^2 + bx + c) to a single value with plain gradient descent
# This example builds the graph once with gradgraph.Node and recomputes it every generation

from gradgraph import NodeContext, constant, differentiate

if __name__ == "__main__":
    with NodeContext() as context:
        target = constant(10.0)
        x = constant(0.5)
        w_0 = constant(0.9)
        w_1 = constant(0.6)
        w_2 = constant(0.4)

        polynomial_result = w_0 + w_1 * x + w_2 * (x**2)  # predictor function
        loss = (polynomial_result - target) ** 2
        lr = 0.1

        for gen in range(10):
            context.recompute()
            differentiate(loss)

            print(f"generation {gen}: {loss.value:2f}")

            for weight in (w_0, w_1, w_2):
                weight.set_value(weight.value - lr * weight.grad)
