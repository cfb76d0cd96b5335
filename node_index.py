def build_node_index(schematic):
    """
    Builds a single mapping for all unknowns (voltages and currents).

    Ground (node 0) is implicitly handled: it is never in the map.
    Node k gets matrix index k - 1, so every id up to node_count owns a row
    even if no component touches it.
    Voltage sources (V) get extra indices for branch currents, keyed by name.

    Returns:
        node_map: dict {node_number_or_component_name: matrix_index}
    """
    node_map = {}

    # 1. Map Nodes (Voltages)
    for node in range(1, schematic.node_count + 1):
        node_map[node] = node - 1

    # 2. Map MNA Components (Branch Currents)
    current_idx = schematic.node_count
    for index in schematic.voltage_sources:
        node_map[schematic.components[index].name] = current_idx
        current_idx += 1

    return node_map


def get_idx(node, node_map):
    """Returns the matrix index for a node/name, or None if it is Ground (0)."""
    if node == 0 or node is None:
        return None
    return node_map.get(node)


def validate_node(node, node_map):
    """
    Validate that a node exists in the circuit.
    Returns the index for non-ground nodes, None for ground (0),
    and raises KeyError for unknown nodes.
    """
    if node == 0:
        return None
    if node not in node_map:
        raise KeyError(f"Node {node} not found in circuit. Known nodes: {sorted(k for k in node_map if isinstance(k, int))}")
    return node_map[node]
