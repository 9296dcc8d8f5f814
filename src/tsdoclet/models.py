from enum import Enum
from typing import Annotated, Any, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from tsdoclet.typeexpr import ANY, TypeNode, join_type_names

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class DocletKind(str, Enum):
    MODULE = "module"
    NAMESPACE = "namespace"
    CLASS = "class"
    INTERFACE = "interface"
    MIXIN = "mixin"
    FUNCTION = "function"
    MEMBER = "member"
    CONSTANT = "constant"
    TYPEDEF = "typedef"
    PACKAGE = "package"
    FILE = "file"


class Scope(str, Enum):
    STATIC = "static"
    INSTANCE = "instance"
    INNER = "inner"
    GLOBAL = "global"


class Access(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"
    PACKAGE = "package"


class SymbolKind(str, Enum):
    ROOT = "root"  # synthetic root of the forest
    MODULE = "module"
    NAMESPACE = "namespace"
    CLASS = "class"
    INTERFACE = "interface"
    FUNCTION = "function"
    MEMBER = "member"
    TYPEDEF = "typedef"
    ENUM = "enum"


# Kinds that may hold other declarations (as opposed to class/interface members)
CONTAINER_KINDS = frozenset({SymbolKind.ROOT, SymbolKind.MODULE, SymbolKind.NAMESPACE})


# ---------------------------------------------------------------------------
# Doclets (input, immutable)
# ---------------------------------------------------------------------------


class DocletModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class DocletType(DocletModel):
    names: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_expression(cls, data: Any) -> Any:
        # a bare type-expression string is accepted as well as jsdoc's {"names": [...]}
        if isinstance(data, str):
            return {"names": [data]}
        return data

    @property
    def expression(self) -> str:
        return join_type_names(self.names) if self.names else ""


class DocletMeta(DocletModel):
    filename: Optional[str] = None
    path: Optional[str] = None
    lineno: Optional[int] = None


class DocletTag(DocletModel):
    title: str
    value: Any = None
    text: Optional[str] = None


class DocletParam(DocletModel):
    name: Optional[str] = None
    type: Optional[DocletType] = None
    description: Optional[str] = None
    optional: bool = False
    nullable: Optional[bool] = None
    variable: bool = False
    defaultvalue: Any = None


class DocletReturn(DocletModel):
    type: Optional[DocletType] = None
    description: Optional[str] = None


class DocletBase(DocletModel):
    name: str = ""
    longname: str
    scope: Optional[Scope] = None
    memberof: Optional[str] = None
    access: Optional[Access] = None
    since: Optional[str] = None
    deprecated: Union[bool, str, None] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    ignore: bool = False
    undocumented: bool = False
    readonly: bool = False
    defaultvalue: Any = None
    properties: List[DocletParam] = Field(default_factory=list)
    tags: List[DocletTag] = Field(default_factory=list)
    meta: Optional[DocletMeta] = None


class ClassDoclet(DocletBase):
    kind: Literal["class", "interface", "mixin"]
    params: List[DocletParam] = Field(default_factory=list)
    augments: List[str] = Field(default_factory=list)
    implements: List[str] = Field(default_factory=list)
    mixes: List[str] = Field(default_factory=list)
    classdesc: Optional[str] = None
    hideconstructor: bool = False
    virtual: bool = False


class FunctionDoclet(DocletBase):
    kind: Literal["function"]
    params: List[DocletParam] = Field(default_factory=list)
    returns: List[DocletReturn] = Field(default_factory=list)


class MemberDoclet(DocletBase):
    kind: Literal["member", "constant"]
    type: Optional[DocletType] = None
    is_enum: bool = Field(default=False, alias="isEnum")


class NamespaceDoclet(DocletBase):
    kind: Literal["namespace", "module"]


class TypedefDoclet(DocletBase):
    kind: Literal["typedef"]
    type: Optional[DocletType] = None
    params: List[DocletParam] = Field(default_factory=list)
    returns: List[DocletReturn] = Field(default_factory=list)


class PackageDoclet(DocletBase):
    kind: Literal["package"]
    files: List[str] = Field(default_factory=list)


class FileDoclet(DocletBase):
    kind: Literal["file"]


Doclet = Annotated[
    Union[
        ClassDoclet,
        FunctionDoclet,
        MemberDoclet,
        NamespaceDoclet,
        TypedefDoclet,
        PackageDoclet,
        FileDoclet,
    ],
    Field(discriminator="kind"),
]

DocletAdapter: TypeAdapter = TypeAdapter(Doclet)

SUPPORTED_DOCLET_KINDS = frozenset(k.value for k in DocletKind)


# ---------------------------------------------------------------------------
# Symbols (internal, mutable during build)
# ---------------------------------------------------------------------------


class TypeParameter(BaseModel):
    name: str
    constraint: Optional[str] = None


class Parameter(BaseModel):
    name: str
    type: TypeNode = ANY
    optional: bool = False
    nullable: bool = False
    variadic: bool = False
    default_value: Optional[str] = None
    description: Optional[str] = None


class CallSignature(BaseModel):
    """One documented overload of a function, constructor or callback."""

    longname: str
    kind: SymbolKind
    params: List[Parameter] = Field(default_factory=list)
    returns: Optional[TypeNode] = None  # None for constructors
    returns_description: Optional[str] = None
    type_parameters: List[TypeParameter] = Field(default_factory=list)
    description: Optional[str] = None
    deprecated: Optional[str] = None
    since: Optional[str] = None

    doclet: Optional[Doclet] = Field(default=None, exclude=True, repr=False)


class EnumValue(BaseModel):
    name: str
    value: Optional[str] = None
    description: Optional[str] = None


class SymbolNode(BaseModel):
    kind: SymbolKind
    name: str
    longname: str

    signatures: List[CallSignature] = Field(default_factory=list)
    type: Optional[TypeNode] = None  # member type, typedef alias or record shape
    enum_values: List[EnumValue] = Field(default_factory=list)
    type_parameters: List[TypeParameter] = Field(default_factory=list)

    augments: List[str] = Field(default_factory=list)
    implements: List[str] = Field(default_factory=list)
    mixes: List[str] = Field(default_factory=list)

    scope: Optional[Scope] = None
    access: Optional[Access] = None
    readonly: bool = False
    constant: bool = False
    abstract: bool = False
    hide_constructor: bool = False

    description: Optional[str] = None
    deprecated: Optional[str] = None
    since: Optional[str] = None

    synthesized: bool = False
    unresolved_parent: Optional[str] = None  # memberof that could not be found

    # Runtime links
    doclets: List[Doclet] = Field(default_factory=list, exclude=True, repr=False)
    parent_ref: Optional["SymbolNode"] = Field(default=None, exclude=True, repr=False)
    children: List["SymbolNode"] = Field(default_factory=list, exclude=True, repr=False)

    # Nodes are linked both ways, compare by identity
    def __eq__(self, other: object) -> bool:
        return self is other

    __hash__ = object.__hash__

    @property
    def doclet(self) -> Optional[Doclet]:
        return self.doclets[0] if self.doclets else None

    @property
    def is_static(self) -> bool:
        return self.scope == Scope.STATIC

    def add_child(self, child: "SymbolNode", index: Optional[int] = None) -> None:
        child.parent_ref = self
        if index is None:
            self.children.append(child)
        else:
            self.children.insert(index, child)

    def walk(self) -> Iterator["SymbolNode"]:
        """Yield this node and its descendants, depth first, in stored order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, longname: str) -> Optional["SymbolNode"]:
        return next((n for n in self.walk() if n.longname == longname), None)

    def child(self, name: str) -> Optional["SymbolNode"]:
        return next((c for c in self.children if c.name == name), None)


def new_root() -> SymbolNode:
    return SymbolNode(kind=SymbolKind.ROOT, name="", longname="")
