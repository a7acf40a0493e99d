import json
import logging
import os
import tempfile
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

import yaml
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError as RuamelYAMLError
from ruamel.yaml.scalarstring import SingleQuotedScalarString

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)

_ruamel_yaml = YAML()
_ruamel_yaml.indent(mapping=2, sequence=4, offset=2)
_ruamel_yaml.default_flow_style = False

# Documents are read back with PyYAML, which resolves plain scalars by the
# YAML 1.1 rules (yes/no/on/off booleans, base-60 ints such as 1:30).
_reader_resolver = yaml.resolver.Resolver()
_STR_TAG = "tag:yaml.org,2002:str"


def _quote_ambiguous_strings(data: Any) -> Any:
    """
    Wrap every string the reader would not resolve as a string in quotes.

    Parameters:
        data (Any): Plain lists/dicts/scalars about to be serialized.

    Returns:
        Any: The same structure, with ambiguous strings replaced by
        SingleQuotedScalarString.
    """
    if isinstance(data, dict):
        return {key: _quote_ambiguous_strings(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_quote_ambiguous_strings(item) for item in data]
    if isinstance(data, str):
        tag = _reader_resolver.resolve(yaml.ScalarNode, data, (True, False))
        if tag != _STR_TAG:
            return SingleQuotedScalarString(data)
    return data


def yaml_to_string(data: Any) -> str:
    """
    Serialize a document to YAML using the module's ruamel.yaml instance.

    Strings that PyYAML would read back as another type are single-quoted,
    so `yaml.safe_load` returns exactly what was written.

    Parameters:
        data (Any): Plain lists/dicts/scalars to serialize.

    Returns:
        str: YAML text with two-space mapping indentation.
    """
    string_stream = StringIO()
    _ruamel_yaml.dump(_quote_ambiguous_strings(data), string_stream)
    return string_stream.getvalue()


@dataclass(frozen=True)
class DocumentCodec:
    """Pairs a parser and a serializer for one text format."""

    name: str
    loads: Callable[[str], Any]
    dumps: Callable[[Any], str]
    errors: Tuple[type, ...]


YAML_CODEC = DocumentCodec(
    name="yaml",
    loads=yaml.safe_load,
    dumps=yaml_to_string,
    errors=(yaml.YAMLError,),
)

JSON_CODEC = DocumentCodec(
    name="json",
    loads=json.loads,
    dumps=lambda data: json.dumps(data, indent=2, ensure_ascii=False) + "\n",
    errors=(json.JSONDecodeError,),
)


class DocumentFile:
    """
    A structured-text document that is always read and written whole.

    Failures never propagate as exceptions: `read` and `write` hand back a
    PersistenceError value so callers can keep working with in-memory state.
    """

    def __init__(self, path: Union[str, Path], codec: DocumentCodec):
        """
        Parameters:
            path (str | Path): Location of the document. Resolved to an absolute path.
            codec (DocumentCodec): Format used to parse and serialize the document.
        """
        self.path = Path(path).resolve()
        self.codec = codec

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Tuple[Optional[Any], Optional[PersistenceError]]:
        """
        Read and parse the whole document.

        Returns:
            Tuple[Optional[Any], Optional[PersistenceError]]: `(data, None)` on success,
            `(None, None)` when the file does not exist, and `(None, error)` when the
            file cannot be read or parsed.
        """
        if not self.path.exists():
            logger.info(f"No document at {self.path}; starting empty.")
            return None, None

        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return None, PersistenceError(
                f"Could not read {self.path}: {e}", original_exception=e
            )

        if not content.strip():
            return None, None

        try:
            data = self.codec.loads(content)
        except self.codec.errors as e:
            return None, PersistenceError(
                f"Invalid {self.codec.name} in {self.path}: {e}",
                original_exception=e,
            )
        logger.debug(f"Loaded document {self.path}")
        return data, None

    def write(self, data: Any) -> Optional[PersistenceError]:
        """
        Serialize and replace the document atomically.

        The text is written to a temporary file in the same directory, synced,
        and renamed over the target, so a failed write leaves the previous
        document untouched.

        Returns:
            Optional[PersistenceError]: None on success, the failure otherwise.
        """
        tmp_path: Optional[Path] = None
        try:
            text = self.codec.dumps(data)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError, RuamelYAMLError) as e:
            logger.error(f"Failed to write document {self.path}: {e}")
            if tmp_path is not None and tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError as cleanup_error:
                    logger.warning(
                        f"Could not remove temporary file {tmp_path}: {cleanup_error}"
                    )
            return PersistenceError(
                f"Could not write {self.path}: {e}", original_exception=e
            )
        logger.debug(f"Wrote document {self.path}")
        return None
