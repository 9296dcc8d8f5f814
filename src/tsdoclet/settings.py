from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnresolvedTypePolicy(str, Enum):
    ANY = "any"
    KEEP = "keep"


class SinceSettings(BaseModel):
    """Settings for filtering doclets by their `@since` tag."""

    latest_version: Optional[str] = Field(
        default=None,
        description=(
            "Latest released version. Doclets tagged with a later `@since` version "
            "are left out of the declarations."
        ),
    )
    comparator: Optional[str] = Field(
        default=None,
        description=(
            'Import path ("package.module:function") of a custom version comparator. '
            "It is called with (tagged_version, latest_version) and returns True to keep the doclet."
        ),
    )


class OutputSettings(BaseModel):
    """Settings for the emitted declaration text."""

    file_name: str = Field(
        default="jsdoc-results.d.ts",
        description="File name used when the destination is a directory.",
    )
    indent: str = Field(
        default="\t", description="Indentation unit for nested declarations."
    )
    emit_comments: bool = Field(
        default=True,
        description="If True, every declaration is preceded by its JSDoc comment.",
    )


def _get_default_known_types() -> set[str]:
    return {
        "Array",
        "ArrayBuffer",
        "Blob",
        "Date",
        "Document",
        "Element",
        "Error",
        "Event",
        "EventTarget",
        "File",
        "Function",
        "HTMLElement",
        "Iterable",
        "Iterator",
        "Map",
        "Node",
        "NodeList",
        "Object",
        "Promise",
        "Record",
        "RegExp",
        "Set",
        "Uint8Array",
        "WeakMap",
        "WeakSet",
        "Window",
    }


class CompilerSettings(BaseSettings):
    """Top-level settings for a compilation run."""

    ignore_scopes: set[str] = Field(
        default_factory=set,
        description='Doclet scopes to leave out entirely (e.g. "inner").',
    )
    include_private: bool = Field(
        default=True,
        description="If True, private doclets are emitted with a `private` modifier in class bodies.",
    )
    include_undocumented: bool = Field(
        default=False,
        description="If True, doclets jsdoc flagged as undocumented are compiled as well.",
    )
    unresolved_types: UnresolvedTypePolicy = Field(
        default=UnresolvedTypePolicy.ANY,
        description=(
            'What to print for a type name that matches no documented symbol: "any" '
            '(with a diagnostic) or "keep" to print the name verbatim.'
        ),
    )
    known_types: set[str] = Field(
        default_factory=_get_default_known_types,
        description="Global type names that resolve without being documented.",
    )
    since: SinceSettings = Field(
        default_factory=SinceSettings,
        description="Settings for `@since` filtering.",
    )
    output: OutputSettings = Field(
        default_factory=OutputSettings,
        description="Settings for the emitted declaration text.",
    )

    model_config = SettingsConfigDict(env_prefix="TSDOCLET_", env_nested_delimiter="__")
