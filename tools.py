import numpy as np
import matplotlib
matplotlib.use('Agg')  # This must come before importing pyplot
import matplotlib.pyplot as plt


def print_solution(V, node_map):
    """
    Prints the solution vector V using the unified node_map.
    Automatically distinguishes between Voltages (node keys) and Currents (string keys).
    """
    print("\n--- Simulation Results ---")

    nodes = []
    branches = []

    for key, idx in node_map.items():
        if isinstance(key, int):  # It's a node number
            nodes.append((key, idx))
        else:  # It's a voltage source name
            branches.append((key, idx))

    # 1. Print Node Voltages
    print("Node Voltages:")
    for node, idx in sorted(nodes):
        print(f"  Node {node}: {float(V[idx]):10.6f} V")

    # 2. Print Branch Currents
    if branches:
        print("\nBranch Currents:")
        for name, idx in sorted(branches):
            print(f"  {name:7}: {float(V[idx]):10.6f} A")


def plot_transient(rows, nodes, path, name="transient"):
    """
    Plots the transient simulation results.

    rows: (t, v1, ..., vN) rows from a transient run
    nodes: node numbers to plot (node k is column k of a row)
    path: file the figure is saved to
    """
    data = np.array(list(rows), dtype=float)
    if data.size == 0:
        raise ValueError("No rows to plot")

    fig, ax = plt.subplots(figsize=(5, 4))
    for node in nodes:
        ax.plot(data[:, 0], data[:, node], linewidth=2, label=f"V(N{node:03d})")

    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Voltage (V)")
    ax.set_title(f"Transient: {name}")
    ax.grid(True, ls="-", alpha=0.6)
    ax.legend()

    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
