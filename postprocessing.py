def format_row(row, delimiter=", ", precision=9):
    """Formats one `(t, v1, ..., vN)` row, without a trailing delimiter."""
    return delimiter.join(f"{value:.{precision}g}" for value in row)


def write_rows(rows, sink, delimiter=", ", precision=9):
    """
    Writes one line per row to sink (anything with a `write` method).
    Returns the number of rows written.
    """
    count = 0
    for row in rows:
        sink.write(format_row(row, delimiter, precision) + "\n")
        count += 1
    return count


def node_voltages(VI, node_count):
    """
       Maps the solution vector back to the user-defined
       nodes, leaving out the branch currents:
           VI: solution vector, node voltages first
           returns: dict {node_number: voltage}, ground included
       """
    voltages = {0: 0.0}
    for node in range(1, node_count + 1):
        voltages[node] = float(VI[node - 1])
    return voltages
