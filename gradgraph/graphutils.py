import matplotlib.pyplot as plt
import networkx as nx

from gradgraph.ops import NodeKind
from gradgraph.traversal import traverse

NODE_COLOURS = {
    NodeKind.CONSTANT: "#C1E1C1",
    NodeKind.VARIABLE: "#FFB6C1",
    NodeKind.UNARY: "#00B4D9",
    NodeKind.BINARY: "#00B4D9",
}


def node_label(node):
    name = node.label()
    if node.value is not None and node.grad:
        return f"{name}\nVal: {round(node.value, 2)}\nGrad: {round(node.grad, 2)}"
    return f"{name}\nVal: {node.value}\nGrad: {node.grad}"


def to_networkx(root):
    """
    Exports the graph below `root` as a `networkx.DiGraph`.

    Graph nodes are keyed by `id()` of the expression nodes and carry `label`, `kind`, `op`, `name`,
    `value` and `grad` attributes. Edges point from a node to each of its inputs, with the input's
    position stored as `position`.

    Args:
        root (gradgraph.node.Node): The root of the expression graph.

    Returns:
        networkx.DiGraph: The exported graph.
    """
    G = nx.DiGraph()
    for node in traverse(root):
        G.add_node(
            id(node),
            label=node_label(node),
            kind=node.kind,
            op=node.op,
            name=node.name,
            value=node.value,
            grad=node.grad,
        )
        for position, subexpr in enumerate(node.inputs):
            G.add_edge(id(node), id(subexpr), position=position)
    return G


def visualise_graph(root, show=True):
    G = to_networkx(root)
    labels = nx.get_node_attributes(G, "label")

    pos = nx.planar_layout(G) if nx.is_planar(G) else nx.spring_layout(G, seed=0)
    # pink for variables, green for constants, blue for operations
    colourmap = [NODE_COLOURS[kind] for kind in nx.get_node_attributes(G, "kind").values()]

    nx.draw(
        G,
        pos,
        labels=labels,
        with_labels=True,
        node_size=800,
        node_color=colourmap,
        font_size=6,
    )
    if show:
        plt.show()
    return G
