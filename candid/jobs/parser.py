"""YAML parser with ruamel.yaml for line number tracking."""

from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import MarkedYAMLError

from candid.core.exceptions import ParseError


class YAMLParser:
    """Round-trip YAML parser that keeps source positions for error reports."""

    def __init__(self) -> None:
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.default_flow_style = False
        # job files indent list items under their key ("  - name: ...")
        self.yaml.indent(mapping=2, sequence=4, offset=2)

    def parse_file(self, file_path: str | Path) -> dict[str, Any]:
        """Parse a YAML file.

        Raises:
            ParseError: If the file is missing, empty or not valid YAML.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with file_path.open("r", encoding="utf-8") as f:
                data = self.yaml.load(f)
        except MarkedYAMLError as e:
            raise self._marked_error(e) from e
        except Exception as e:
            raise ParseError(f"Failed to parse YAML file {file_path}: {e}") from e

        return self._require_mapping(data, f"Empty YAML file: {file_path}")

    def parse_string(self, content: str) -> dict[str, Any]:
        """Parse YAML from a string.

        Raises:
            ParseError: If the content is empty or not valid YAML.
        """
        try:
            data = self.yaml.load(content)
        except MarkedYAMLError as e:
            raise self._marked_error(e) from e
        except Exception as e:
            raise ParseError(f"Failed to parse YAML content: {e}") from e

        return self._require_mapping(data, "Empty YAML content")

    def dump_file(self, data: dict[str, Any], file_path: str | Path) -> None:
        """Write data parsed by this parser back, keeping comments and order."""
        with Path(file_path).open("w", encoding="utf-8") as f:
            self.yaml.dump(data, f)

    @staticmethod
    def _marked_error(e: MarkedYAMLError) -> ParseError:
        line = e.problem_mark.line + 1 if e.problem_mark else None
        column = e.problem_mark.column + 1 if e.problem_mark else None
        return ParseError(
            f"YAML parsing error at line {line}, column {column}: {e.problem}"
        )

    @staticmethod
    def _require_mapping(data: Any, empty_message: str) -> dict[str, Any]:
        if data is None:
            raise ParseError(empty_message)
        if not isinstance(data, dict):
            raise ParseError(
                f"Expected a mapping at the top level, got {type(data).__name__}"
            )
        return data


def locate(data: Any, loc: tuple[int | str, ...]) -> int | None:
    """Return the 1-based source line of ``loc`` inside parsed YAML data.

    Walks as deep as the location exists in the document and reports the
    line of the deepest node found, or None when nothing carries positions.
    """
    line: int | None = None
    node = data
    for key in loc:
        if isinstance(node, CommentedMap) and key in node:
            line = node.lc.key(key)[0] + 1
            node = node[key]
        elif (
            isinstance(node, CommentedSeq)
            and isinstance(key, int)
            and 0 <= key < len(node)
        ):
            line = node.lc.item(key)[0] + 1
            node = node[key]
        else:
            break
    return line
