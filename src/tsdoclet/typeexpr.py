import re
from typing import Annotated, Any, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from tsdoclet.diagnostics import DiagnosticKind, DiagnosticSink
from tsdoclet.logger import logger

# ---------------------------------------------------------------------------
# Type nodes
# ---------------------------------------------------------------------------


class TypeBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class NamedType(TypeBase):
    """Reference to a primitive, a global or a documented symbol (by longname)."""

    type: Literal["named"] = "named"
    name: str


class UnionType(TypeBase):
    type: Literal["union"] = "union"
    members: Tuple["TypeNode", ...]


class ArrayType(TypeBase):
    type: Literal["array"] = "array"
    element: "TypeNode"


class GenericType(TypeBase):
    type: Literal["generic"] = "generic"
    base: str
    args: Tuple["TypeNode", ...]


class FunctionParam(TypeBase):
    name: Optional[str] = None
    type: "TypeNode"
    optional: bool = False
    variadic: bool = False


class FunctionType(TypeBase):
    type: Literal["function"] = "function"
    params: Tuple[FunctionParam, ...] = ()
    returns: Optional["TypeNode"] = None
    this_type: Optional["TypeNode"] = None
    constructs: Optional["TypeNode"] = None  # closure `function(new:T)`


class RecordField(TypeBase):
    name: str
    type: "TypeNode"
    optional: bool = False
    description: Optional[str] = None


class RecordType(TypeBase):
    type: Literal["record"] = "record"
    fields: Tuple[RecordField, ...] = ()


class LiteralType(TypeBase):
    type: Literal["literal"] = "literal"
    value: str  # source text: '"on"', "42", "true"


class UnknownType(TypeBase):
    """Expression the translator could not read; printed as ``any``."""

    type: Literal["unknown"] = "unknown"
    raw: str = ""


TypeNode = Annotated[
    Union[
        NamedType,
        UnionType,
        ArrayType,
        GenericType,
        FunctionType,
        RecordType,
        LiteralType,
        UnknownType,
    ],
    Field(discriminator="type"),
]

for _model in (
    UnionType,
    ArrayType,
    GenericType,
    FunctionParam,
    FunctionType,
    RecordField,
    RecordType,
):
    _model.model_rebuild()


ANY = NamedType(name="any")
VOID = NamedType(name="void")
NULL = NamedType(name="null")
STRING = NamedType(name="string")

PRIMITIVE_TYPES = frozenset(
    {
        "any",
        "unknown",
        "never",
        "string",
        "number",
        "boolean",
        "bigint",
        "symbol",
        "object",
        "undefined",
        "null",
        "void",
        "this",
    }
)

# jsdoc spellings mapped onto their declaration-syntax equivalents
TYPE_ALIASES = {
    "*": "any",
    "mixed": "any",
    "bool": "boolean",
    "Boolean": "boolean",
    "String": "string",
    "Number": "number",
    "int": "number",
    "integer": "number",
    "float": "number",
    "Symbol": "symbol",
    "Undefined": "undefined",
    "Null": "null",
    "function": "Function",
}


class TypeExpression(TypeBase):
    """
    A translated type expression plus the call-site markers that jsdoc writes
    around it (``?T`` / ``!T`` nullability, ``T=`` optionality, ``...T``).
    """

    type: TypeNode
    optional: bool = False
    nullable: Optional[bool] = None
    variadic: bool = False


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class TypeSyntaxError(ValueError):
    pass


_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<ellipsis>\.\.\.)
    |(?P<generic>\.<)
    |(?P<name>
        module:(?:"[^"]*"|[^\s|,;<>(){}\[\]=:!?*"]+)(?:[.#~][A-Za-z_$][\w$]*)*
        |[A-Za-z_$][\w$]*(?:[.#~][A-Za-z_$][\w$]*)*
    )
    |(?P<punct>[|()<>\[\]{},;:=?!*])
    """,
    re.VERBOSE,
)

Token = Tuple[str, str]


def _tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise TypeSyntaxError(f"unexpected character {text[pos]!r} at {pos}")
        kind = m.lastgroup or ""
        if kind != "space":
            value = m.group(kind)
            if kind in ("ellipsis", "generic"):
                kind = "punct"
            tokens.append((kind, value))
        pos = m.end()
    return tokens


# ---------------------------------------------------------------------------
# Recursive-descent parser
# ---------------------------------------------------------------------------


# Deeper expressions are rejected before the interpreter stack runs out
MAX_NESTING = 64


class _TypeParser:
    def __init__(self, text: str) -> None:
        self.tokens = _tokenize(text)
        self.pos = 0
        self.depth = 0

    def _peek(self, offset: int = 0) -> Optional[Token]:
        idx = self.pos + offset
        return self.tokens[idx] if idx < len(self.tokens) else None

    def _peek_punct(self, value: str, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok[0] == "punct" and tok[1] == value

    def _accept(self, value: str) -> bool:
        if self._peek_punct(value):
            self.pos += 1
            return True
        return False

    def _expect(self, value: str) -> None:
        if not self._accept(value):
            tok = self._peek()
            found = tok[1] if tok else "end of expression"
            raise TypeSyntaxError(f"expected {value!r}, found {found!r}")

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise TypeSyntaxError("unexpected end of expression")
        self.pos += 1
        return tok

    def _at_type_end(self) -> bool:
        tok = self._peek()
        return tok is None or (tok[0] == "punct" and tok[1] in (")", ",", "|", ">", "]", "}", "=", ";"))

    def parse(self) -> TypeExpression:
        variadic = self._accept("...")
        nullable: Optional[bool] = None
        if self._accept("?"):
            nullable = True
        elif self._accept("!"):
            nullable = False

        if self._at_type_end():
            # bare `?` or `...`: unknown type
            if nullable is False or (nullable is None and not variadic):
                raise TypeSyntaxError("missing type")
            node: TypeNode = ANY
            nullable = None
        else:
            node = self._parse_union()

        optional = self._accept("=")
        if self._accept("?"):
            nullable = True
        if self._peek() is not None:
            raise TypeSyntaxError(f"unexpected token {self._peek()[1]!r}")
        return TypeExpression(
            type=node, optional=optional, nullable=nullable, variadic=variadic
        )

    def _parse_union(self) -> TypeNode:
        members: List[TypeNode] = [self._parse_postfix()]
        while self._accept("|"):
            members.append(self._parse_postfix())
        return make_union(members)

    def _parse_postfix(self) -> TypeNode:
        node = self._parse_primary()
        while self._peek_punct("[") and self._peek_punct("]", 1):
            self.pos += 2
            node = ArrayType(element=node)
        return node

    def _parse_primary(self) -> TypeNode:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise TypeSyntaxError(f"nesting deeper than {MAX_NESTING} levels")
        try:
            return self._parse_term()
        finally:
            self.depth -= 1

    def _parse_term(self) -> TypeNode:
        kind, value = self._next()

        if kind == "punct":
            if value == "(":
                node = self._parse_union()
                self._expect(")")
                return node
            if value == "{":
                return self._parse_record()
            if value == "*":
                return ANY
            if value == "?":
                if self._at_type_end():
                    return ANY
                return make_union([self._parse_postfix(), NULL])
            if value == "!":
                return self._parse_postfix()
            raise TypeSyntaxError(f"unexpected token {value!r}")

        if kind in ("string", "number"):
            return LiteralType(value=value)

        # name
        if value == "function" and self._peek_punct("("):
            return self._parse_function()
        if value in ("true", "false"):
            return LiteralType(value=value)
        if self._accept("<") or self._accept(".<"):
            args = [self._parse_union()]
            while self._accept(","):
                args.append(self._parse_union())
            self._expect(">")
            return make_generic(value, args)
        return make_named(value)

    def _parse_function(self) -> FunctionType:
        self._expect("(")
        params: List[FunctionParam] = []
        this_type: Optional[TypeNode] = None
        constructs: Optional[TypeNode] = None

        while not self._accept(")"):
            if params or this_type is not None or constructs is not None:
                self._expect(",")
            tok = self._peek()
            if tok and tok[0] == "name" and self._peek_punct(":", 1):
                self.pos += 2
                if tok[1] == "this":
                    this_type = self._parse_union()
                    continue
                if tok[1] == "new":
                    constructs = self._parse_union()
                    continue
                name: Optional[str] = tok[1]
            else:
                name = None
            variadic = self._accept("...")
            ptype = ANY if self._at_type_end() else self._parse_union()
            optional = self._accept("=")
            params.append(
                FunctionParam(name=name, type=ptype, optional=optional, variadic=variadic)
            )

        returns: Optional[TypeNode] = None
        if self._accept(":"):
            returns = self._parse_postfix()
        return FunctionType(
            params=tuple(params), returns=returns, this_type=this_type, constructs=constructs
        )

    def _parse_record(self) -> RecordType:
        fields: List[RecordField] = []
        while not self._accept("}"):
            if fields:
                if not (self._accept(",") or self._accept(";")):
                    raise TypeSyntaxError("expected ',' between record fields")
                if self._accept("}"):
                    break
            kind, key = self._next()
            if kind == "string":
                key = key[1:-1]
            elif kind not in ("name", "number"):
                raise TypeSyntaxError(f"invalid record key {key!r}")
            optional = self._accept("?")
            ftype: TypeNode = ANY
            if self._accept(":"):
                ftype = self._parse_union()
                optional = self._accept("=") or optional
            fields.append(RecordField(name=key, type=ftype, optional=optional))
        return RecordType(fields=tuple(fields))


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def make_named(name: str) -> TypeNode:
    canonical = TYPE_ALIASES.get(name, name)
    if canonical in ("Array", "array"):
        return ArrayType(element=ANY)
    return NamedType(name=canonical)


def make_generic(base: str, args: Sequence[TypeNode]) -> TypeNode:
    canonical = TYPE_ALIASES.get(base, base)
    if canonical in ("Array", "array") and len(args) == 1:
        return ArrayType(element=args[0])
    if canonical in ("Object", "object"):
        # Object.<V> and Object.<K, V> are both dictionaries
        key, value = (STRING, args[0]) if len(args) == 1 else (args[0], args[1])
        return GenericType(base="Object", args=(key, value))
    return GenericType(base=canonical, args=tuple(args))


def make_union(members: Sequence[TypeNode]) -> TypeNode:
    """
    Flatten nested unions and drop repeated members; a single member is
    returned as is.
    """
    flat: List[TypeNode] = []
    for member in members:
        parts = member.members if isinstance(member, UnionType) else (member,)
        for part in parts:
            if part not in flat:
                flat.append(part)
    if len(flat) == 1:
        return flat[0]
    return UnionType(members=tuple(flat))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_type_expression(
    expression: Optional[str],
    *,
    sink: Optional[DiagnosticSink] = None,
    doclet: Any = None,
) -> TypeExpression:
    """
    Translate a jsdoc type expression. Never raises: unreadable input
    becomes ``UnknownType`` and a ``malformed-type`` diagnostic is recorded
    on *sink*, attributed to *doclet*.
    """
    text = (expression or "").strip()
    if not text:
        return TypeExpression(type=ANY)
    try:
        return _TypeParser(text).parse()
    except TypeSyntaxError as ex:
        message = f"Cannot read type expression {text!r}: {ex}"
        if sink is not None:
            sink.report(DiagnosticKind.MALFORMED_TYPE, message, doclet=doclet)
        else:
            logger.debug(message)
        return TypeExpression(type=UnknownType(raw=text))


def translate(
    expression: Optional[str],
    *,
    sink: Optional[DiagnosticSink] = None,
    doclet: Any = None,
) -> TypeNode:
    return parse_type_expression(expression, sink=sink, doclet=doclet).type


def join_type_names(names: Sequence[str]) -> str:
    """Join the ``type.names`` list of a doclet into one union expression."""
    if len(names) == 1:
        return names[0]
    return "|".join(f"({n})" for n in names)
