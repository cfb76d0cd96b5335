"""
Dense matrix used as the solver's linear-algebra substrate.

Values live in a flat, row-major numpy array. The transient engine keeps one
square conductance matrix G and two column vectors (b and the result), sizes
them once per run, and clears them before every stamping pass.

Determinant and inverse come from Gauss-Jordan elimination with full
pivoting. A pivot within epsilon of zero (relative to the size of the matrix
and its largest entry) marks the matrix as singular.
"""
import numpy as np

from constants import MATRIX_EPSILON
from errors import MatrixDimensionError, SingularMatrixError

PIVOT_EPSILON = np.finfo(float).eps


class Matrix:

    def __init__(self, rows=0, columns=0, values=None):
        self._rows = rows
        self._columns = columns
        if values is None:
            self._values = np.zeros(rows * columns)
        else:
            self._values = np.array(values, dtype=float).ravel()
            if self._values.size != rows * columns:
                raise MatrixDimensionError(
                    f"Got {self._values.size} values for a {rows}x{columns} matrix")

    @classmethod
    def from_rows(cls, rows):
        """Build a matrix from a list of rows; short rows are zero-padded."""
        columns = max((len(row) for row in rows), default=0)
        matrix = cls(len(rows), columns)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                matrix[r, c] = value
        return matrix

    @classmethod
    def column(cls, values):
        """Build a column vector."""
        values = np.asarray(values, dtype=float).ravel()
        return cls(values.size, 1, values)

    @classmethod
    def identity(cls, size):
        return cls(size, size, np.eye(size))

    # =========================================================================
    # SIZE
    # =========================================================================
    @property
    def rows(self):
        return self._rows

    @property
    def columns(self):
        return self._columns

    @property
    def size(self):
        return (self._rows, self._columns)

    def resize(self, rows, columns):
        """Resize, keeping the overlapping top-left block and zero-filling the rest."""
        resized = np.zeros((rows, columns))
        keep_rows, keep_columns = min(rows, self._rows), min(columns, self._columns)
        resized[:keep_rows, :keep_columns] = self.to_array()[:keep_rows, :keep_columns]
        self._rows, self._columns = rows, columns
        self._values = resized.ravel()

    def clear(self):
        """Zero every value without changing the dimensions."""
        self._values.fill(0.0)

    def copy(self):
        return Matrix(self._rows, self._columns, self._values.copy())

    def to_array(self):
        """2-D view of the values (shares memory with the matrix)."""
        return self._values.reshape(self._rows, self._columns)

    # =========================================================================
    # ELEMENT ACCESS
    # =========================================================================
    def _offset(self, index):
        row, column = index
        return row * self._columns + column

    def __getitem__(self, index):
        return self._values[self._offset(index)]

    def __setitem__(self, index, value):
        self._values[self._offset(index)] = value

    # =========================================================================
    # ARITHMETIC
    # =========================================================================
    def _check_same_size(self, other, operation):
        if self.size != other.size:
            raise MatrixDimensionError(f"Can't {operation} matrices of sizes {self.size} and {other.size}")

    def __add__(self, other):
        self._check_same_size(other, "add")
        return Matrix(self._rows, self._columns, self._values + other._values)

    def __sub__(self, other):
        self._check_same_size(other, "subtract")
        return Matrix(self._rows, self._columns, self._values - other._values)

    def __mul__(self, other):
        if isinstance(other, Matrix):
            if self._columns != other._rows:
                raise MatrixDimensionError(f"Can't multiply matrices of sizes {self.size} and {other.size}")
            product = self.to_array() @ other.to_array()
            return Matrix(self._rows, other._columns, product)
        return Matrix(self._rows, self._columns, self._values * other)

    def __rmul__(self, factor):
        return Matrix(self._rows, self._columns, self._values * factor)

    def __truediv__(self, factor):
        return Matrix(self._rows, self._columns, self._values / factor)

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        if self.size != other.size:
            return False
        return bool(np.all(np.abs(self._values - other._values) <= MATRIX_EPSILON))

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    __hash__ = None

    # =========================================================================
    # ADVANCED MATRIX FUNCTIONS
    # =========================================================================
    def transpose(self):
        return Matrix(self._columns, self._rows, self.to_array().T)

    def _check_square(self, operation):
        if self._rows != self._columns:
            raise MatrixDimensionError(f"Can't get {operation} of non-square matrix of size {self.size}")

    def _gauss_jordan(self):
        """
        Reduce the matrix to the identity with full pivoting, applying the same
        row operations to an identity matrix.

        Returns (determinant, inverse values); the inverse is None when a
        pivot is within epsilon of zero.
        """
        n = self._rows
        a = self.to_array().copy()
        inverse = np.eye(n)
        permutation = np.arange(n)
        determinant = 1.0

        largest = np.max(np.abs(a)) if n else 0.0
        tolerance = PIVOT_EPSILON * n * largest

        for k in range(n):
            block = np.abs(a[k:, k:])
            row, column = np.unravel_index(np.argmax(block), block.shape)
            row, column = row + k, column + k
            pivot = a[row, column]
            if abs(pivot) <= tolerance:
                return 0.0, None

            if row != k:
                a[[k, row]] = a[[row, k]]
                inverse[[k, row]] = inverse[[row, k]]
                determinant = -determinant
            if column != k:
                a[:, [k, column]] = a[:, [column, k]]
                permutation[[k, column]] = permutation[[column, k]]
                determinant = -determinant

            determinant *= pivot
            a[k] /= pivot
            inverse[k] /= pivot

            factors = a[:, k].copy()
            factors[k] = 0.0
            a -= np.outer(factors, a[k])
            inverse -= np.outer(factors, inverse[k])

        # Column swaps on A permute the rows of its inverse
        result = np.empty_like(inverse)
        result[permutation] = inverse
        return determinant, result

    def determinant(self):
        self._check_square("determinant")
        determinant, _ = self._gauss_jordan()
        return determinant

    def inverse(self):
        self._check_square("inverse")
        _, inverse = self._gauss_jordan()
        if inverse is None:
            raise SingularMatrixError("Can't get inverse of matrix with a zero determinant")
        return Matrix(self._rows, self._columns, inverse)

    # =========================================================================
    # PRINTING
    # =========================================================================
    def __str__(self):
        """One '[a, b, c]' line per row."""
        return "\n".join(
            "[" + ", ".join(f"{value:g}" for value in row) + "]"
            for row in self.to_array()
        )

    def __repr__(self):
        return f"Matrix({self._rows}, {self._columns}, {self._values.tolist()!r})"
