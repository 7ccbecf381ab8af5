"""
Utilities for string interpolation using environment variables.
"""
import re
from typing import Any, Dict, List, Optional


class InterpolationError(KeyError):
    """
    Raised by ${VAR:?message} and ${VAR?message} when VAR is missing.
    """
    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class EnvironmentInterpolator:
    """
    Utility for interpolating environment variables in strings.
    Supports $VAR, ${VAR}, ${VAR:-default}, ${VAR-default}, ${VAR:+value},
    ${VAR+value}, ${VAR:?message}, ${VAR?message} and $$ escapes.
    """
    # Group 'escape': $$
    # Group 'named': $VAR
    # Groups 'braced', 'op', 'arg': ${VAR<op><arg>}
    pattern = re.compile(
        r'\$(?:'
        r'(?P<escape>\$)'
        r'|(?P<named>[A-Za-z_][A-Za-z0-9_]*)'
        r'|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<op>:?[-+?])(?P<arg>[^}]*))?\}'
        r')'
    )

    def __init__(self, context: Dict[str, str]):
        """
        :param context: The environment variables context.
        """
        self.context = context
        self.missing: List[str] = []

    def interpolate(self, template: str) -> str:
        """
        Interpolates environment variables in the template string.

        Unset plain variables resolve to an empty string and are recorded
        in ``missing``.

        :param template: The string containing placeholders.
        :return: The interpolated string.
        :raises InterpolationError: For a '?' form whose variable is missing.
        """
        return self.pattern.sub(self._replace, template)

    def interpolate_data(self, data: Any) -> Any:
        """
        Interpolates every string inside a decoded YAML structure.
        Mapping keys are left alone.
        """
        if isinstance(data, str):
            return self.interpolate(data)
        if isinstance(data, dict):
            return {k: self.interpolate_data(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self.interpolate_data(v) for v in data]
        return data

    def _replace(self, match) -> str:
        if match.group('escape'):
            return '$'

        name = match.group('named') or match.group('braced')
        op: Optional[str] = match.group('op')
        arg = match.group('arg') or ''
        value = self.context.get(name)
        # ':' variants treat an empty value like an unset one
        is_set = value is not None and (value != '' or not (op or '').startswith(':'))

        if op in (':-', '-'):
            return value if is_set else arg
        if op in (':+', '+'):
            return arg if is_set else ''
        if op in (':?', '?'):
            if not is_set:
                raise InterpolationError(arg or f"required variable {name} is missing a value")
            return value

        if value is None:
            if name not in self.missing:
                self.missing.append(name)
            return ''
        return value
