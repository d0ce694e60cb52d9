from gradgraph import constant, differentiate, exp


def sigmoid(x):
    return 1 / (1 + exp(-x))


if __name__ == "__main__":
    x = constant(1.0)
    sigm = sigmoid(x)

    differentiate(sigm)
    print(sigm.value)
    print(x.grad)  # ds/dx @ x = 1
