import numpy as np


def format_matrix(matrix: np.ndarray, max_size: int = 8) -> str:
    """
    Format a 2D array as a bordered table string with truncation.

    Parameters
    ----------
    matrix : np.ndarray
        Input array to format.
    max_size : int, optional
        Maximum number of rows/columns to show, by default 8

    Returns
    -------
    str
        Table with ``...`` rows/columns where the matrix was truncated.
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    nrows, ncols = matrix.shape
    cell_width = 12
    ellipsis_str = f"{'...':^{cell_width}}"

    def trunc_indices(total: int):
        if total <= max_size:
            return list(range(total)), []
        n_head = max_size // 2
        n_tail = max_size - n_head - 1
        return list(range(n_head)) + list(range(total - n_tail, total)), [n_head]

    row_idx, row_cuts = trunc_indices(nrows)
    col_idx, col_cuts = trunc_indices(ncols)
    truncated = matrix[np.ix_(row_idx, col_idx)]

    def cell(value: float) -> str:
        return f"{value:{cell_width}.3e}" if abs(value) > 1e-10 else " " * cell_width

    rows = []
    for i, row in enumerate(truncated):
        if i in row_cuts:
            rows.append([ellipsis_str] * (len(col_idx) + len(col_cuts)))
        formatted_row = []
        for j, value in enumerate(row):
            if j in col_cuts:
                formatted_row.append(ellipsis_str)
            formatted_row.append(cell(value))
        rows.append(formatted_row)

    border = "+" + "+".join(["-" * (cell_width + 2)] * len(rows[0])) + "+"
    lines = [border]
    for row in rows:
        lines.append("| " + " | ".join(row) + " |")
        lines.append(border)
    return "\n".join(lines)
