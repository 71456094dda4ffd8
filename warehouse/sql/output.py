"""Result export and preview."""

import csv
from pathlib import Path
from typing import Any, Mapping, Optional

from .executor import ResultSet


def save_as_csv(output_path: Path, result: ResultSet):
    """Save results as CSV file."""
    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(result.columns)
        writer.writerows(result.tuples())


def generate_output_filename(sql_file: Path, variables: Optional[Mapping[str, Any]] = None) -> str:
    """Generate output filename matching the SQL file name with .csv extension.

    When template variables are provided, appends them as a suffix so that
    multiple runs with different variables don't overwrite each other.
    E.g., yearly-counts.sql with table=pubs -> yearly-counts_table-pubs.csv
    """
    stem = sql_file.stem
    if variables:
        suffix = "_".join(f"{k}-{v}" for k, v in sorted(variables.items()))
        stem = f"{stem}_{suffix}"
    return f"{stem}.csv"


def resolve_output_path(sql_file: Optional[Path], output_arg: Optional[str],
                        variables: Optional[Mapping[str, Any]] = None) -> Path:
    """
    Resolve where a fetch result is written.

    --output wins (a directory gets results.csv inside it); otherwise the CSV
    goes next to the SQL file, or to output.csv in the working directory for
    inline SQL.
    """
    if output_arg:
        output_path = Path(output_arg)
        if output_path.is_dir() or output_arg.endswith('/'):
            output_path.mkdir(parents=True, exist_ok=True)
            return output_path / "results.csv"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    if sql_file is None:
        return Path.cwd() / "output.csv"

    return sql_file.parent / generate_output_filename(sql_file, variables)


def format_preview(result: ResultSet, limit: int = 5, width: int = 20) -> str:
    """Fixed-width preview of the first rows."""
    rule = "-" * 100
    lines = [rule, " | ".join(f"{col:<{width}}" for col in result.columns), rule]
    for row in result.tuples()[:limit]:
        lines.append(" | ".join(
            f"{str(val):<{width}}" if val is not None else f"{'NULL':<{width}}" for val in row
        ))
    return "\n".join(lines)
