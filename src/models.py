"""
Data models for the Digital Twin metamodel MCP server.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DocumentKind(str, Enum):
    """The two root document kinds."""
    INTERFACE = "Interface"
    CAPABILITY_MODEL = "CapabilityModel"


ROOT_KINDS = frozenset(kind.value for kind in DocumentKind)


# --- Ontology Models ---

class TypedProperty(BaseModel):
    """A property allowed on a type, as seen from that type."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Short name of the property (e.g., 'displayName')")
    required: bool = Field(default=False, description="Whether the type requires the property")
    range_type: Optional[str] = Field(default=None, description="Short name of the range type")


# --- Token Models ---

class TokenKind(str, Enum):
    OPEN_BRACE = "{"
    CLOSE_BRACE = "}"
    OPEN_BRACKET = "["
    CLOSE_BRACKET = "]"
    COLON = ":"
    COMMA = ","
    KEY = "key"
    STRING = "string"
    NUMBER = "number"
    LITERAL = "literal"
    INVALID = "invalid"


class Token(BaseModel):
    """A lexical token with its [start, end) offsets in the document."""
    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    start: int
    end: int
    text: str
    value: Optional[str] = Field(default=None, description="Decoded content of string tokens")
    closed: bool = Field(default=True, description="False for a string missing its closing quote")

    @property
    def is_string(self) -> bool:
        return self.kind in (TokenKind.KEY, TokenKind.STRING)


# --- Cursor Models ---

class CursorContext(BaseModel):
    """Syntactic and schema context derived for a cursor offset."""
    model_config = ConfigDict(frozen=True)

    offset: int
    key_path: list[Union[str, int]] = Field(default_factory=list)
    is_value_position: bool = False
    current_key: Optional[str] = None
    sibling_properties: frozenset[str] = Field(default_factory=frozenset)
    resolved_type: Optional[Union[str, list[str]]] = None
    parent_property: Optional[str] = Field(default=None, description="Property holding the enclosing object")
    container: Optional[str] = Field(default=None, description="'object', 'array' or None outside any container")
    context_kind: DocumentKind = DocumentKind.INTERFACE

    @property
    def resolved_types(self) -> list[str]:
        """The resolved type(s) as a list, empty when unresolved."""
        if self.resolved_type is None:
            return []
        if isinstance(self.resolved_type, str):
            return [self.resolved_type] if self.resolved_type else []
        return list(self.resolved_type)


# --- Result Models ---

class TextRange(BaseModel):
    """A [start, end) offset range in the document text."""
    model_config = ConfigDict(frozen=True)

    start: int
    end: int


class CandidateKind(str, Enum):
    VALUE = "value"
    PROPERTY = "property"


class CandidateItem(BaseModel):
    """A completion candidate and the exact span it replaces."""
    model_config = ConfigDict(frozen=True)

    label: str
    insert_text: str = Field(description="Quoted JSON string to insert")
    insert_range: TextRange
    kind: CandidateKind
    required: bool = False
    range_type: Optional[str] = None


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


class DiagnosticCode(str, Enum):
    UNKNOWN_PROPERTY = "UnknownProperty"
    MISSING_REQUIRED_PROPERTY = "MissingRequiredProperty"
    INVALID_VALUE = "InvalidValue"
    UNKNOWN_TYPE = "UnknownType"
    DUPLICATE_PROPERTY = "DuplicateProperty"


class Diagnostic(BaseModel):
    """A positioned structural or semantic problem in a document."""
    model_config = ConfigDict(frozen=True)

    range: TextRange
    message: str
    code: DiagnosticCode
    severity: Severity = Severity.ERROR
    property_name: Optional[str] = Field(default=None, description="Property the diagnostic is about")


# --- Editor Adapter Models ---

class Position(BaseModel):
    """Zero-based line/character position, as editors address text."""
    line: int
    character: int


class EditorRange(BaseModel):
    start: Position
    end: Position


class EditorCandidate(BaseModel):
    """A completion candidate with its replace range in line/character form."""
    label: str
    insert_text: str
    range: EditorRange
    kind: CandidateKind
    required: bool = False
    range_type: Optional[str] = None


class EditorDiagnostic(BaseModel):
    """A diagnostic with its range in line/character form."""
    range: EditorRange
    message: str
    code: DiagnosticCode
    severity: Severity
    property_name: Optional[str] = None
