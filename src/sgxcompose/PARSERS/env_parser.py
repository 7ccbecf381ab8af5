"""
Parsers for .env files, supporting quotes, comments and export prefixes.
"""
import io
from typing import Dict

from dotenv import dotenv_values


class EnvParser:
    """
    Parser for .env files.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Dictionary of environment variables.
        """
        with open(env_path, 'r') as f:
            content = f.read()
        return EnvParser.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses environment variables from a string.
        Keys without a value (a bare ``NAME`` line) map to an empty string.
        """
        values = dotenv_values(stream=io.StringIO(content), interpolate=False)
        return {k: (v if v is not None else '') for k, v in values.items()}
