"""Line classification for ``artisan tinker`` transcripts.

Tinker (PsySH) interleaves echoed prompts, its banner and ``= value``
result lines with whatever the executed code printed. Lines are classified
by structural markers only, so banner wording changes do not matter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

PROMPT_MARKERS = (">>>", "...")
BANNER_MARKERS = ("Psy Shell", "Xdebug:")
EXIT_COMMAND = "exit"
RESULT_MARKER = "="
# Stray prompt fragments left after stripping markers
PUNCTUATION_ARTIFACTS = (">", ".", ";")
EMPTY_RESULT = "null"


class LineKind(str, Enum):
    BLANK = "blank"
    BANNER = "banner"
    PROMPT = "prompt"
    EXIT = "exit"
    RESULT = "result"
    OUTPUT = "output"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str = ""

    @property
    def kept(self) -> bool:
        return self.kind in (LineKind.RESULT, LineKind.OUTPUT)


def strip_prompts(line: str) -> str:
    """Strip leading prompt markers until none is left."""
    core = line.strip()
    while True:
        for marker in PROMPT_MARKERS:
            if core.startswith(marker):
                core = core[len(marker):].strip()
                break
        else:
            return core


def is_prompt_line(line: str) -> bool:
    """Whether a raw line starts with a prompt marker."""
    return line.startswith(PROMPT_MARKERS)


def classify_line(raw: str) -> ClassifiedLine:
    """Classify a single transcript line.

    Lines that match no marker are kept as output.
    """
    trimmed = raw.strip()
    core = strip_prompts(trimmed)

    if not core or _is_punctuation_artifact(core):
        return ClassifiedLine(LineKind.BLANK)
    if any(marker in core for marker in BANNER_MARKERS):
        return ClassifiedLine(LineKind.BANNER)
    if core == EXIT_COMMAND:
        return ClassifiedLine(LineKind.EXIT)

    if core == RESULT_MARKER or core.startswith(RESULT_MARKER + " "):
        return ClassifiedLine(LineKind.RESULT, core[len(RESULT_MARKER):].strip())

    if is_prompt_line(trimmed):
        # Echo of the submitted code
        return ClassifiedLine(LineKind.PROMPT, core)

    return ClassifiedLine(LineKind.OUTPUT, core)


def parse_transcript(output: str) -> str:
    """Reduce a raw transcript to its result and output lines.

    Returns:
        The kept lines joined with newlines, or ``"null"`` when nothing
        meaningful was printed.
    """
    kept = _kept_texts(classify_line(line) for line in output.splitlines())
    result = "\n".join(kept).strip()
    return result or EMPTY_RESULT


def _kept_texts(lines: Iterable[ClassifiedLine]) -> List[str]:
    return [line.text for line in lines if line.kept]


def _is_punctuation_artifact(core: str) -> bool:
    return core in PUNCTUATION_ARTIFACTS
