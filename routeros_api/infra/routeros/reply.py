"""Reply sentences received from a RouterOS device.

A reply sentence starts with one of four markers that fully determine its
kind. Remaining words are attribute words (``=name=value``), API attribute
words (``.name=value``, with ``.tag`` used for correlation) or free text
(seen in ``!fatal`` notices).
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from routeros_api.infra.routeros.exceptions import RouterOSProtocolError

TAG_ATTRIBUTE = ".tag"


class ReplyKind(str, Enum):
    """Closed set of reply sentence kinds, keyed by their first word."""

    DONE = "!done"
    ROW = "!re"
    TRAP = "!trap"
    FATAL = "!fatal"

    @property
    def is_terminal(self) -> bool:
        """Whether this kind completes the request it is attributed to."""
        return self in (ReplyKind.DONE, ReplyKind.FATAL)


@dataclass(frozen=True)
class Reply:
    """One reply sentence.

    Attribute lookups distinguish an attribute set to the empty string from
    a missing one:

        reply.get("comment")   # "" when sent as "=comment=", None when absent
        "comment" in reply     # True only when present

    Attributes:
        kind: Reply kind from the first word
        attributes: Read-only mapping of attribute name to value
        tag: Correlation tag, or None for untagged sentences
        text: Free-text words that are not attributes
        words: Raw words of the sentence, marker included
    """

    kind: ReplyKind
    attributes: Mapping[str, str] = field(default_factory=dict)
    tag: str | None = None
    text: tuple[str, ...] = ()
    words: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @classmethod
    def from_words(cls, words: Sequence[str]) -> "Reply":
        """Parse a decoded sentence.

        Raises:
            RouterOSProtocolError: On an empty sentence, an unknown marker
                or a duplicate attribute
        """
        if not words:
            raise RouterOSProtocolError("Empty reply sentence")

        try:
            kind = ReplyKind(words[0])
        except ValueError as e:
            raise RouterOSProtocolError(f"Unknown reply sentence type: {words[0]!r}") from e

        attributes: dict[str, str] = {}
        text: list[str] = []
        tag: str | None = None

        for word in words[1:]:
            if word.startswith("="):
                name, _, value = word[1:].partition("=")
            elif word.startswith(".") and "=" in word:
                name, _, value = word.partition("=")
                if name == TAG_ATTRIBUTE:
                    if tag is not None:
                        raise RouterOSProtocolError("Duplicate .tag in reply sentence")
                    tag = value
                    continue
            else:
                text.append(word)
                continue

            if name in attributes:
                raise RouterOSProtocolError(f"Duplicate attribute {name!r} in reply sentence")
            attributes[name] = value

        return cls(
            kind=kind,
            attributes=attributes,
            tag=tag,
            text=tuple(text),
            words=tuple(words),
        )

    def has(self, name: str) -> bool:
        return name in self.attributes

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self.attributes

    def __getitem__(self, name: str) -> str:
        return self.attributes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    @property
    def message(self) -> str | None:
        """Device-supplied message, falling back to free text for !fatal."""
        if "message" in self.attributes:
            return self.attributes["message"]
        if self.text:
            return " ".join(self.text)
        return None

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal
