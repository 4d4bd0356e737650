"""
Outputs: the values a cell produces while it executes, and the rules for
accumulating them into a cell's output list.

Stored output lists are tuples of ``(counter, value)`` entries ordered
most-recent-first. Incoming messages are indexed (given counters) first and
then inserted, which is where chunk merging and carriage-return handling
happen.
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Iterable, Iterator, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator

from notebook_doc.errors import FrameDepthError


class FrameKind(str, Enum):
    """How a frame message applies to frames that already exist."""
    DEFAULT = "default"
    REPLACE = "replace"
    APPEND = "append"


class TerminalText(BaseModel):
    """Plain terminal output, such as captured stdout."""
    model_config = ConfigDict(frozen=True)

    type: Literal["terminal_text"] = "terminal_text"
    content: str = ""
    chunk: bool = False


class MarkdownText(BaseModel):
    """Markdown output. Chunks merge only with other markdown chunks."""
    model_config = ConfigDict(frozen=True)

    type: Literal["markdown"] = "markdown"
    content: str = ""
    chunk: bool = False


class AssetInfo(BaseModel):
    """Where a previously shipped asset bundle lives, keyed by content hash."""
    model_config = ConfigDict(frozen=True)

    hash: str
    archive_path: str = ""
    js_path: str = ""


class AssetOutput(BaseModel):
    """
    An opaque output that carries an asset bundle (a JS widget, for example).

    ``data`` is stored as a read-only mapping so snapshots sharing it stay
    unchanged.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["asset"] = "asset"
    assets: AssetInfo
    data: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("data", mode="after")
    @classmethod
    def _freeze_data(cls, value):
        return MappingProxyType(dict(value))

    @field_serializer("data")
    def _dump_data(self, value):
        return dict(value)


class Frame(BaseModel):
    """A nested output region that later messages can address by ``ref``."""
    model_config = ConfigDict(frozen=True)

    type: Literal["frame"] = "frame"
    outputs: tuple["OutputEntry", ...] = ()
    ref: str
    kind: FrameKind = FrameKind.DEFAULT


class Ignored(BaseModel):
    """An output the evaluator explicitly discards. Never stored."""
    model_config = ConfigDict(frozen=True)

    type: Literal["ignored"] = "ignored"


OutputValue = Annotated[
    Union[TerminalText, MarkdownText, Frame, AssetOutput],
    Field(discriminator="type"),
]
OutputEntry = tuple[int, OutputValue]


def _upgrade_legacy(data: Any) -> Any:
    """Rewrite the old single-field text/markdown dict shapes into current ones."""
    if not isinstance(data, dict) or "content" in data or "text" not in data:
        return data
    if data.get("type") == "text":
        return {"type": "terminal_text", "content": data["text"], "chunk": False}
    if data.get("type") == "markdown":
        return {"type": "markdown", "content": data["text"], "chunk": False}
    return data


class FrameMessage(BaseModel):
    """
    A frame as emitted by the evaluator.

    Unlike a stored ``Frame`` its outputs are plain values, newest first,
    that have not been given counters yet.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["frame"] = "frame"
    outputs: tuple["OutputMessage", ...] = ()
    ref: str
    kind: FrameKind = FrameKind.DEFAULT

    @field_validator("outputs", mode="before")
    @classmethod
    def _upgrade_nested(cls, value):
        if isinstance(value, (list, tuple)):
            return [_upgrade_legacy(item) for item in value]
        return value


OutputMessage = Annotated[
    Union[TerminalText, MarkdownText, FrameMessage, AssetOutput, Ignored],
    Field(discriminator="type"),
]

Frame.model_rebuild()
FrameMessage.model_rebuild()

_message_adapter = TypeAdapter(OutputMessage)

# Everything on a line up to the last CR that has something after it.
_CR_OVERWRITE = re.compile(r"^.*\r([^\r].*)$")


def parse_output(data: Any):
    """
    Coerce evaluator output into an ``OutputMessage``.

    Accepts message models as-is, or plain dicts (including the legacy
    ``{"type": "text", "text": ...}`` and ``{"type": "markdown", "text": ...}``
    shapes, which become non-chunk text).

    Raises:
        pydantic.ValidationError: if the data matches no output variant
    """
    if isinstance(data, (TerminalText, MarkdownText, FrameMessage, AssetOutput, Ignored)):
        return data
    return _message_adapter.validate_python(_upgrade_legacy(data))


def normalize_terminal_text(text: str) -> str:
    """
    Apply carriage returns the way a terminal would.

    On every line, a CR discards what was written before it. A trailing CR
    with nothing after it is kept, so the next chunk can still overwrite
    the line.
    """
    return "\n".join(_CR_OVERWRITE.sub(r"\1", line) for line in text.split("\n"))


def message_depth(message) -> int:
    """Frame nesting depth of a message: 0 for non-frames."""
    depth = 0
    stack = [(message, 1)]
    while stack:
        item, level = stack.pop()
        if isinstance(item, FrameMessage):
            depth = max(depth, level)
            stack.extend((nested, level + 1) for nested in item.outputs)
    return depth


def check_depth(message, max_depth: int) -> None:
    """Raise ``FrameDepthError`` if the message nests frames too deeply."""
    if message_depth(message) > max_depth:
        raise FrameDepthError(max_depth)


def frame_depth(outputs: Iterable[OutputEntry], ref: str) -> int:
    """
    Depth of the deepest frame with the given ref that an update would reach.

    Top-level frames are at depth 1; frames inside a match are not searched.
    Returns 0 when no frame matches.
    """
    depth = 0
    stack = [(entry, 1) for entry in outputs]
    while stack:
        (_, value), level = stack.pop()
        if isinstance(value, Frame):
            if value.ref == ref:
                depth = max(depth, level)
            else:
                stack.extend((entry, level + 1) for entry in value.outputs)
    return depth


def check_update_depth(outputs: Iterable[OutputEntry], message: FrameMessage, max_depth: int) -> None:
    """
    Raise ``FrameDepthError`` if updating the frames in ``outputs`` with
    ``message`` would nest frames deeper than ``max_depth``.

    The message's nested frames end up below each matching frame.
    """
    depth = frame_depth(outputs, message.ref)
    if depth and depth + message_depth(message) - 1 > max_depth:
        raise FrameDepthError(max_depth)


def index_output(message, counter: int) -> tuple[Optional[OutputEntry], int]:
    """
    Give a message its counter, turning frame messages into stored frames.

    Nested values of a frame are indexed first, in the order given, and then
    merged into the frame oldest-first. Returns ``(entry, next_counter)``;
    the entry is ``None`` for ignored output.
    """
    if isinstance(message, Ignored):
        return None, counter
    if isinstance(message, FrameMessage):
        entries, counter = index_outputs(message.outputs, counter)
        frame = Frame(outputs=insert_outputs((), reversed(entries)), ref=message.ref)
        return (counter, frame), counter + 1
    return (counter, message), counter + 1


def index_outputs(messages: Iterable, counter: int) -> tuple[list[OutputEntry], int]:
    """Index a sequence of messages, skipping ignored ones."""
    entries = []
    for message in messages:
        entry, counter = index_output(message, counter)
        if entry is not None:
            entries.append(entry)
    return entries, counter


def insert_output(outputs: tuple, entry: OutputEntry) -> tuple:
    """
    Put an indexed entry on top of an output list.

    A text chunk landing on a chunk of the same variant is appended to it in
    place, keeping the older counter. Text content is CR-normalized as a whole
    after the append so overwrites work across chunk boundaries.
    """
    counter, value = entry
    if isinstance(value, (TerminalText, MarkdownText)):
        if value.chunk and outputs:
            last_counter, last = outputs[0]
            if type(last) is type(value) and last.chunk:
                content = normalize_terminal_text(last.content + value.content)
                merged = last.model_copy(update={"content": content})
                return ((last_counter, merged),) + outputs[1:]
        value = value.model_copy(update={"content": normalize_terminal_text(value.content)})
    return ((counter, value),) + outputs


def insert_outputs(outputs: tuple, entries: Iterable[OutputEntry]) -> tuple:
    """Insert entries one by one, oldest first."""
    for entry in entries:
        outputs = insert_output(outputs, entry)
    return outputs


def update_frames(outputs: tuple, message: FrameMessage, counter: int) -> tuple[tuple, int, int]:
    """
    Apply a replace/append frame message to every frame with its ref.

    Searches nested frames too. Each match gets its own counters for the new
    content and keeps its own counter and slot.

    Returns:
        ``(outputs, next_counter, match_count)``; ``outputs`` is the same
        object when nothing matched
    """
    matches = 0
    updated = []
    for idx, value in outputs:
        if isinstance(value, Frame):
            if value.ref == message.ref:
                entries, counter = index_outputs(message.outputs, counter)
                base = value.outputs if message.kind is FrameKind.APPEND else ()
                value = value.model_copy(update={
                    "outputs": insert_outputs(base, reversed(entries)),
                    "kind": FrameKind.DEFAULT,
                })
                matches += 1
            else:
                nested, counter, nested_matches = update_frames(value.outputs, message, counter)
                if nested_matches:
                    value = value.model_copy(update={"outputs": nested})
                    matches += nested_matches
        updated.append((idx, value))
    if not matches:
        return outputs, counter, 0
    return tuple(updated), counter, matches


def walk_outputs(outputs: Iterable[OutputEntry]) -> Iterator[OutputEntry]:
    """Yield every entry depth-first, each frame before its nested entries."""
    for entry in outputs:
        yield entry
        _, value = entry
        if isinstance(value, Frame):
            yield from walk_outputs(value.outputs)


def find_frames(outputs: Iterable[OutputEntry], ref: str) -> list[OutputEntry]:
    """All frame entries with the given ref, at any depth."""
    return [
        entry for entry in walk_outputs(outputs)
        if isinstance(entry[1], Frame) and entry[1].ref == ref
    ]


def find_asset(outputs: Iterable[OutputEntry], hash: str) -> Optional[AssetInfo]:
    """Asset info of the first asset output with the given hash, at any depth."""
    for _, value in walk_outputs(outputs):
        if isinstance(value, AssetOutput) and value.assets.hash == hash:
            return value.assets
    return None
