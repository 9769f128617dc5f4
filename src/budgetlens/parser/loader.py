"""YAML loading for requests, factor tables and series.

everything is loaded from an explicit path - there's no directory scanning
or dataset discovery here.

yaml floats are read as Decimal straight from their text. going through
float first would turn an exchange rate like 4.9749 into
4.97489999999999987997... before the pipeline ever sees it.
"""

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from budgetlens.models.normalization import NormalizationFactors
from budgetlens.models.query import AnalyticsRequest
from budgetlens.models.series import DataSeries
from budgetlens.normalization.factors import build_factors, factor_map_from_points

FACTOR_DATASETS = ("cpi", "eur", "usd", "population", "gdp")


class DecimalSafeLoader(yaml.SafeLoader):
    """SafeLoader that builds Decimals for yaml floats."""


def _construct_decimal(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> Decimal:
    text = str(loader.construct_scalar(node)).replace("_", "")
    lowered = text.lower()
    # .inf / .nan come through so parse_decimal can reject them by name
    if lowered in (".inf", "+.inf", "-.inf", ".nan"):
        return Decimal(lowered.replace(".inf", "Infinity").replace(".nan", "NaN"))
    return Decimal(text)


DecimalSafeLoader.add_constructor("tag:yaml.org,2002:float", _construct_decimal)


def load_yaml(path: str | Path) -> Any:
    """Parse a yaml file with decimal floats. empty files come back as None."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        return yaml.load(f, Loader=DecimalSafeLoader)


def _require_mapping(data: Any, path: Path, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a {what} mapping in {path}, got {type(data).__name__}")
    return data


def load_request(path: str | Path) -> AnalyticsRequest:
    """Load a request document: `filter:` plus optional `options:`."""
    path = Path(path)
    data = _require_mapping(load_yaml(path), path, "request")
    if "filter" not in data:
        raise ValueError(f"Request document {path} has no 'filter' section")
    return AnalyticsRequest.model_validate(
        {"filter": data["filter"], "options": data.get("options") or {}}
    )


def _dataset_points(name: str, raw: Any, path: Path) -> list[tuple[Any, Any]]:
    """Accept {year: value} mappings or [{x: label, y: value}] point lists."""
    if isinstance(raw, dict):
        return list(raw.items())
    if isinstance(raw, list):
        points = []
        for item in raw:
            if not isinstance(item, dict) or "x" not in item or "y" not in item:
                raise ValueError(f"Dataset '{name}' in {path}: points need 'x' and 'y', got {item!r}")
            points.append((item["x"], item["y"]))
        return points
    raise ValueError(f"Dataset '{name}' in {path} must be a mapping or a list of points")


def load_factors(
    path: str | Path, year_range: tuple[int, int] | None = None
) -> NormalizationFactors:
    """Load a factors document into NormalizationFactors.

    unknown dataset names are rejected rather than ignored - a typo like
    `eru:` would otherwise silently turn currency conversion into a no-op.
    with year_range set, gaps are carried forward from earlier years.
    """
    path = Path(path)
    data = load_yaml(path)
    if data is None:
        return build_factors(year_range=year_range)
    data = _require_mapping(data, path, "factors")

    unknown = sorted(str(name) for name in set(data) - set(FACTOR_DATASETS))
    if unknown:
        raise ValueError(f"Unknown factor datasets in {path}: {', '.join(unknown)}")

    maps = {
        name: factor_map_from_points(_dataset_points(name, raw, path), dataset=name)
        for name, raw in data.items()
        if raw is not None
    }
    return build_factors(**maps, year_range=year_range)


def load_series(path: str | Path) -> DataSeries:
    """Load a series document: `frequency:` plus `data:` ({date, value} points)."""
    path = Path(path)
    data = _require_mapping(load_yaml(path), path, "series")
    return DataSeries.model_validate(
        {"frequency": data.get("frequency"), "data": data.get("data") or []}
    )
