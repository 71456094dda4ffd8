"""
SQL template loading and placeholder substitution.

Templates carry named placeholders of the form @{identifier}:

    SELECT year, COUNT(*) AS items
    FROM @{table}
    WHERE year >= @{since}
    GROUP BY year

Values are inserted as text, exactly as given. Anything that must become a
SQL string literal has to be quoted by the caller first (see
connection.escape_literal).
"""

import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from .errors import TemplateNotFound, UnresolvedPlaceholder


PLACEHOLDER_PATTERN = re.compile(r'@\{(\w+)\}')


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in order of first appearance, without duplicates."""
    seen = []
    for name in PLACEHOLDER_PATTERN.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def resolve_template(template: str, context: Optional[Mapping[str, Any]] = None) -> str:
    """
    Substitute every @{name} placeholder in the template.

    Substitution is a single pass: a substituted value is never scanned for
    placeholders again.

    Args:
        template: SQL text with @{name} placeholders
        context: Mapping of placeholder names to values

    Returns:
        The resolved statement

    Raises:
        UnresolvedPlaceholder: If any placeholder has no entry in the context.
            Nothing is substituted in that case.
    """
    if context is None:
        context = {}

    missing = [name for name in find_placeholders(template) if name not in context]
    if missing:
        raise UnresolvedPlaceholder(missing)

    return PLACEHOLDER_PATTERN.sub(lambda match: str(context[match.group(1)]), template)


def load_template_file(path: Union[str, Path]) -> str:
    """Load a SQL template from file, unresolved."""
    sql_file = Path(path)
    if not sql_file.is_file():
        raise TemplateNotFound(f"SQL file not found: {sql_file}")

    try:
        return sql_file.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateNotFound(f"SQL file not readable: {sql_file} ({e})") from e


def apply_limit_to_query(statement: str, limit: int) -> str:
    """
    Append a LIMIT clause to a resolved statement.

    The clause goes after the last line of actual SQL, so trailing comments
    do not swallow it, and a trailing semicolon is moved after the limit.
    """
    lines = statement.split('\n')

    # Find the last non-comment, non-empty line
    last_query_line_idx = -1
    for i in range(len(lines) - 1, -1, -1):
        line = lines[i].strip()
        if line and not line.startswith('--'):
            last_query_line_idx = i
            break

    if last_query_line_idx == -1:
        statement = statement.rstrip().rstrip(';').rstrip()
        return f"{statement}\nLIMIT {limit};"

    query_lines = lines[:last_query_line_idx + 1]
    query_lines[-1] = query_lines[-1].rstrip().rstrip(';')

    statement = '\n'.join(query_lines)
    return f"{statement}\nLIMIT {limit};"
