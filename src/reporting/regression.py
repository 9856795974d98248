"""Ordinary least squares models from R-style formulas.

Formulas look like `mpg ~ cyl + wt + factor(vs)*factor(am)`:
- `a + b` adds terms, `- b` removes one
- `factor(x)` (or `as.factor(x)`, `C(x)`) dummy codes x; the first sorted
  level is the baseline
- `a:b` is an interaction, `a*b` expands to `a + b + a:b`
- `- 1` or `+ 0` drops the intercept

Rows with nulls in any formula column are dropped before fitting. The
least squares solve itself is numpy's.
"""

import itertools
import logging
import re
from dataclasses import dataclass, field

import numpy as np
import polars as pl

from processing.expressions import check_columns
from tabular import Dataset, InvalidArgument, TypeMismatch

logger = logging.getLogger(__name__)

INTERCEPT = "(Intercept)"

_FACTOR = re.compile(r"^(?:factor|as\.factor|C)\(\s*([A-Za-z_][\w.]*)\s*\)$")
_NAME = re.compile(r"^[A-Za-z_][\w.]*$")


# Formula parsing --------------------------------------------------------------

@dataclass(frozen=True)
class Variable:
    column: str
    categorical: bool = False

    @property
    def label(self) -> str:
        return f"factor({self.column})" if self.categorical else self.column


@dataclass(frozen=True)
class Term:
    """Main effect (one variable) or interaction (several)."""

    variables: tuple[Variable, ...]

    @property
    def label(self) -> str:
        return ":".join(v.label for v in self.variables)


@dataclass(frozen=True)
class Formula:
    response: str
    terms: tuple[Term, ...]
    intercept: bool = True
    text: str = ""

    @property
    def columns(self) -> list[str]:
        names = [self.response]
        names += [v.column for t in self.terms for v in t.variables]
        return list(dict.fromkeys(names))


def _split_top_level(text: str, separators: str) -> list[tuple[str, str]]:
    """Split on separators outside parentheses, keeping each piece's sign."""
    pieces: list[tuple[str, str]] = []
    depth = 0
    sign = "+"
    current: list[str] = []

    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char in separators and depth == 0:
            pieces.append((sign, "".join(current).strip()))
            sign = char
            current = []
        else:
            current.append(char)

    pieces.append((sign, "".join(current).strip()))
    return pieces


def _variable(token: str, formula: str) -> Variable:
    match = _FACTOR.match(token)
    if match:
        return Variable(match.group(1), categorical=True)
    if _NAME.match(token):
        return Variable(token)
    msg = f"cannot parse term '{token}'"
    raise InvalidArgument(msg, argument=formula)


def _expand(chunk: str, formula: str) -> list[Term]:
    """Expand `a*b:c` style chunks into terms."""
    crossed = []
    for _, piece in _split_top_level(chunk, "*"):
        parts = [p for _, p in _split_top_level(piece, ":")]
        if not all(parts):
            msg = f"empty term in '{chunk}'"
            raise InvalidArgument(msg, argument=formula)
        crossed.append(tuple(_variable(p, formula) for p in parts))

    terms = []
    for r in range(1, len(crossed) + 1):
        for combo in itertools.combinations(crossed, r):
            variables = tuple(dict.fromkeys(v for group in combo for v in group))
            terms.append(Term(variables))
    return terms


def parse_formula(text: str) -> Formula:
    """Parse an R-style model formula.

    Raises:
        InvalidArgument: On malformed formulas
    """
    if text.count("~") != 1:
        msg = "formula needs exactly one '~'"
        raise InvalidArgument(msg, argument=text)

    lhs, rhs = (side.strip() for side in text.split("~"))
    if not _NAME.match(lhs):
        msg = f"response must be a column name, got '{lhs}'"
        raise InvalidArgument(msg, argument=text)

    intercept = True
    terms: list[Term] = []
    removed: list[Term] = []

    for i, (sign, chunk) in enumerate(_split_top_level(rhs, "+-")):
        if not chunk and i == 0 and rhs.startswith("-"):
            # Leading minus, as in `y ~ -1 + x`
            continue
        if not chunk:
            msg = "empty term"
            raise InvalidArgument(msg, argument=text)
        if chunk in ("0", "1"):
            intercept = (sign, chunk) in (("+", "1"), ("-", "0"))
            continue
        if sign == "-":
            removed.extend(_expand(chunk, text))
        else:
            terms.extend(_expand(chunk, text))

    terms = [t for t in dict.fromkeys(terms) if t not in removed]
    # Main effects before interactions
    terms.sort(key=lambda t: len(t.variables))

    if not terms and not intercept:
        msg = "model has no terms"
        raise InvalidArgument(msg, argument=text)

    return Formula(lhs, tuple(terms), intercept, text)


# Design matrix ----------------------------------------------------------------

def _variable_columns(
    frame: pl.DataFrame, variable: Variable
) -> list[tuple[str, np.ndarray]]:
    series = frame.get_column(variable.column)

    if variable.categorical:
        levels = sorted(series.unique().to_list())
        return [
            (
                f"{variable.label}{level}",
                (series == level).cast(pl.Float64).to_numpy(),
            )
            for level in levels[1:]
        ]

    if not (series.dtype.is_numeric() or series.dtype == pl.Boolean):
        msg = (
            f"cannot use {series.dtype} column in a model, "
            "wrap it in factor()"
        )
        raise TypeMismatch(msg, column=variable.column)
    return [(variable.column, series.cast(pl.Float64).to_numpy())]


def design_matrix(
    dataset: Dataset, formula: Formula
) -> tuple[np.ndarray, np.ndarray, list[str]]:
    """Build the model matrix and response for a formula.

    Returns:
        (X, y, column names of X)
    """
    check_columns(dataset.columns, formula.columns)
    frame = dataset.frame.select(formula.columns).drop_nulls()
    dropped = dataset.height - frame.height
    if dropped:
        logger.info("Dropped %d rows with missing values", dropped)

    response = frame.get_column(formula.response)
    if not response.dtype.is_numeric():
        msg = f"response must be numeric, got {response.dtype}"
        raise TypeMismatch(msg, column=formula.response)

    names: list[str] = []
    columns: list[np.ndarray] = []
    if formula.intercept:
        names.append(INTERCEPT)
        columns.append(np.ones(frame.height))

    for term in formula.terms:
        per_variable = [_variable_columns(frame, v) for v in term.variables]
        for combo in itertools.product(*per_variable):
            names.append(":".join(name for name, _ in combo))
            columns.append(np.prod([values for _, values in combo], axis=0))

    x = (
        np.column_stack(columns)
        if columns
        else np.empty((frame.height, 0))
    )
    y = response.cast(pl.Float64).to_numpy()
    return x, y, names


# Fitting ----------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class FittedModel:
    """Result of an OLS fit."""

    formula: Formula
    names: tuple[str, ...]
    coefficients: np.ndarray
    std_errors: np.ndarray
    t_values: np.ndarray
    residuals: np.ndarray = field(repr=False)
    fitted_values: np.ndarray = field(repr=False)
    r_squared: float
    adj_r_squared: float
    sigma: float
    f_statistic: float
    df_model: int
    df_resid: int

    @property
    def n_obs(self) -> int:
        return len(self.residuals)

    def coef(self) -> dict[str, float]:
        return dict(zip(self.names, self.coefficients.tolist(), strict=True))

    def to_frame(self) -> pl.DataFrame:
        """Coefficient table as a DataFrame."""
        return pl.DataFrame(
            {
                "term": list(self.names),
                "estimate": self.coefficients,
                "std_error": self.std_errors,
                "t_value": self.t_values,
            }
        )

    def summary(self, digits: int = 4) -> str:
        """Text summary in the layout of R's summary.lm."""
        quartiles = np.quantile(self.residuals, [0, 0.25, 0.5, 0.75, 1])
        labels = ["Min", "1Q", "Median", "3Q", "Max"]
        width = max(len(f"{q:.{digits}f}") for q in quartiles) + 1

        name_width = max(len(n) for n in self.names) if self.names else 0
        lines = [
            "Call:",
            f"lm(formula = {self.formula.text})",
            "",
            "Residuals:",
            "".join(label.rjust(width) for label in labels),
            "".join(f"{q:.{digits}f}".rjust(width) for q in quartiles),
            "",
            "Coefficients:",
            " " * name_width
            + "Estimate".rjust(12)
            + "Std. Error".rjust(12)
            + "t value".rjust(10),
        ]
        for name, est, se, t in zip(
            self.names,
            self.coefficients,
            self.std_errors,
            self.t_values,
            strict=True,
        ):
            lines.append(
                name.ljust(name_width)
                + f"{est:.{digits}f}".rjust(12)
                + f"{se:.{digits}f}".rjust(12)
                + f"{t:.3f}".rjust(10)
            )

        lines += [
            "",
            f"Residual standard error: {self.sigma:.{digits}g} "
            f"on {self.df_resid} degrees of freedom",
            f"Multiple R-squared:  {self.r_squared:.4f},\t"
            f"Adjusted R-squared:  {self.adj_r_squared:.4f}",
        ]
        if self.df_model > 0:
            lines.append(
                f"F-statistic: {self.f_statistic:.{digits}g} on "
                f"{self.df_model} and {self.df_resid} DF"
            )
        return "\n".join(lines)


def fit_ols(dataset: Dataset | pl.DataFrame, formula: str | Formula) -> FittedModel:
    """Fit a linear model by ordinary least squares.

    Args:
        dataset: Data to fit on
        formula: R-style formula string or parsed Formula

    Raises:
        InvalidColumnReference: If the formula names an absent column
        TypeMismatch: If a non-numeric column is used without factor()
        InvalidArgument: If the formula is malformed, there are too few
            rows, or the design matrix is rank deficient
    """
    dataset = Dataset.of(dataset)
    parsed = parse_formula(formula) if isinstance(formula, str) else formula
    x, y, names = design_matrix(dataset, parsed)

    n_obs, n_params = x.shape
    if n_obs <= n_params:
        msg = f"{n_obs} observations are not enough for {n_params} coefficients"
        raise InvalidArgument(msg, argument="formula")
    if np.linalg.matrix_rank(x) < n_params:
        msg = "design matrix is rank deficient (collinear terms)"
        raise InvalidArgument(msg, argument="formula")

    coefficients, *_ = np.linalg.lstsq(x, y, rcond=None)
    fitted = x @ coefficients
    residuals = y - fitted

    df_resid = n_obs - n_params
    rss = float(residuals @ residuals)
    sigma2 = rss / df_resid
    std_errors = np.sqrt(np.diag(sigma2 * np.linalg.inv(x.T @ x)))

    if parsed.intercept:
        tss = float(((y - y.mean()) ** 2).sum())
        df_model = n_params - 1
    else:
        tss = float((y**2).sum())
        df_model = n_params

    r_squared = 1.0 - rss / tss if tss > 0 else float("nan")
    adj_r_squared = 1.0 - (1.0 - r_squared) * (
        (n_obs - int(parsed.intercept)) / df_resid
    )
    f_statistic = (
        ((tss - rss) / df_model) / sigma2 if df_model > 0 else float("nan")
    )

    logger.info(
        "Fitted %s on %d rows (R-squared %.4f)",
        parsed.text,
        n_obs,
        r_squared,
    )
    return FittedModel(
        formula=parsed,
        names=tuple(names),
        coefficients=coefficients,
        std_errors=std_errors,
        t_values=coefficients / std_errors,
        residuals=residuals,
        fitted_values=fitted,
        r_squared=r_squared,
        adj_r_squared=adj_r_squared,
        sigma=float(np.sqrt(sigma2)),
        f_statistic=f_statistic,
        df_model=df_model,
        df_resid=df_resid,
    )


# Reporting --------------------------------------------------------------------

def report_models(
    *models: FittedModel,
    title: str | None = None,
    digits: int = 3,
) -> str:
    """Side by side text table of fitted models.

    One column per model; each coefficient shows its estimate with the
    standard error in parentheses below. The intercept is listed last as
    "Constant", followed by fit statistics.
    """
    if not models:
        msg = "report_models needs at least one model"
        raise InvalidArgument(msg, argument="models")

    terms = list(
        dict.fromkeys(
            name for m in models for name in m.names if name != INTERCEPT
        )
    )
    if any(INTERCEPT in m.names for m in models):
        terms.append(INTERCEPT)

    rows: list[tuple[str, list[str]]] = []
    for term in terms:
        estimates, errors = [], []
        for m in models:
            values = dict(
                zip(
                    m.names,
                    zip(m.coefficients, m.std_errors, strict=True),
                    strict=True,
                )
            )
            if term in values:
                est, se = values[term]
                estimates.append(f"{est:.{digits}f}")
                errors.append(f"({se:.{digits}f})")
            else:
                estimates.append("")
                errors.append("")
        label = "Constant" if term == INTERCEPT else term
        rows += [(label, estimates), ("", errors), ("", [""] * len(models))]

    stats = [
        ("Observations", [str(m.n_obs) for m in models]),
        ("R2", [f"{m.r_squared:.{digits}f}" for m in models]),
        ("Adjusted R2", [f"{m.adj_r_squared:.{digits}f}" for m in models]),
        (
            "Residual Std. Error",
            [f"{m.sigma:.{digits}f} (df = {m.df_resid})" for m in models],
        ),
        (
            "F Statistic",
            [
                f"{m.f_statistic:.{digits}f} (df = {m.df_model}; {m.df_resid})"
                for m in models
            ],
        ),
    ]

    responses = [m.formula.response for m in models]
    if len(models) > 1:
        numbers = [f"({i})" for i in range(1, len(models) + 1)]
    else:
        numbers = []

    all_cells = [c for _, cells in rows + stats for c in cells] + responses
    label_width = max(len(label) for label, _ in rows + stats) + 2
    cell_width = max(len(c) for c in all_cells) + 4
    total = label_width + cell_width * len(models)

    def line(label: str, cells: list[str]) -> str:
        return label.ljust(label_width) + "".join(
            c.center(cell_width) for c in cells
        )

    out = []
    if title:
        out.append(title.center(total))
    out += [
        "=" * total,
        " " * label_width
        + "Dependent variable:".center(cell_width * len(models)),
        " " * label_width + "-" * (cell_width * len(models)),
        line("", responses),
    ]
    if numbers:
        out.append(line("", numbers))
    out.append("-" * total)
    out += [line(label, cells) for label, cells in rows[:-1]]
    out.append("-" * total)
    out += [line(label, cells) for label, cells in stats]
    out.append("=" * total)
    return "\n".join(out)
