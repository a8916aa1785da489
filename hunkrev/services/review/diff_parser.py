import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import structlog

logger = structlog.get_logger()

DEV_NULL = "/dev/null"

FileStatus = Literal["added", "modified", "deleted", "renamed"]


class LineType(str, Enum):
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


@dataclass(frozen=True)
class DiffLine:
    """A single line in a diff."""

    type: LineType
    content: str
    old_line_no: int | None = None
    new_line_no: int | None = None

    @property
    def line_number(self) -> int:
        """Line number to cite: the new-file line, or the old one for deletions."""
        if self.new_line_no is not None:
            return self.new_line_no
        return self.old_line_no or 0

    @property
    def prefix(self) -> str:
        return {
            LineType.CONTEXT: " ",
            LineType.ADDITION: "+",
            LineType.DELETION: "-",
        }[self.type]

    def __str__(self) -> str:
        return f"{self.prefix}{self.content}"


@dataclass(frozen=True)
class Hunk:
    """A hunk (section) of changes in a diff."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    header: str  # The @@ line
    lines: tuple[DiffLine, ...] = ()

    def to_patch_string(self) -> str:
        return "\n".join([self.header, *(str(line) for line in self.lines)])


@dataclass(frozen=True)
class FileChange:
    """Parsed diff for a single file.

    ``destination_path`` is ``None`` when the file is deleted and
    ``source_path`` is ``None`` when it is newly added.
    """

    source_path: str | None
    destination_path: str | None
    status: FileStatus = "modified"
    hunks: tuple[Hunk, ...] = ()
    is_binary: bool = False

    @property
    def path(self) -> str:
        return self.destination_path or self.source_path or ""

    @property
    def is_deleted(self) -> bool:
        return self.destination_path is None

    @property
    def additions(self) -> int:
        """Count of added lines."""
        return sum(
            1 for hunk in self.hunks for line in hunk.lines if line.type == LineType.ADDITION
        )

    @property
    def deletions(self) -> int:
        """Count of deleted lines."""
        return sum(
            1 for hunk in self.hunks for line in hunk.lines if line.type == LineType.DELETION
        )

    def to_patch_string(self) -> str:
        """Reconstruct the patch string for this file."""
        return "\n".join(hunk.to_patch_string() for hunk in self.hunks)


@dataclass
class _PendingHunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    header: str
    lines: list[DiffLine] = field(default_factory=list)
    next_old: int = 0
    next_new: int = 0
    old_remaining: int = 0
    new_remaining: int = 0

    def __post_init__(self) -> None:
        self.next_old = self.old_start
        self.next_new = self.new_start
        self.old_remaining = self.old_count
        self.new_remaining = self.new_count

    @property
    def is_open(self) -> bool:
        return self.old_remaining > 0 or self.new_remaining > 0

    def freeze(self) -> Hunk:
        return Hunk(
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            header=self.header,
            lines=tuple(self.lines),
        )


@dataclass
class _PendingFile:
    source_path: str | None
    destination_path: str | None
    renamed: bool = False
    is_binary: bool = False
    malformed: bool = False
    saw_old_header: bool = False
    hunks: list[_PendingHunk] = field(default_factory=list)

    def freeze(self) -> FileChange:
        status: FileStatus
        if self.destination_path is None:
            status = "deleted"
        elif self.source_path is None:
            status = "added"
        elif self.renamed or self.source_path != self.destination_path:
            status = "renamed"
        else:
            status = "modified"

        return FileChange(
            source_path=self.source_path,
            destination_path=self.destination_path,
            status=status,
            hunks=tuple(hunk.freeze() for hunk in self.hunks),
            is_binary=self.is_binary,
        )


class DiffParser:
    """Parser for unified diff format.

    Parsing never raises. Binary, mode-only and rename-only sections become
    files with no hunks; a file with a malformed header is skipped.
    """

    # Regex patterns
    FILE_HEADER_PATTERN = re.compile(r"^diff --git a/(.*) b/(.*)$")
    BARE_FILE_HEADER_PATTERN = re.compile(r"^diff --git (\S+) (\S+)$")
    OLD_FILE_PATTERN = re.compile(r"^--- (.*)$")
    NEW_FILE_PATTERN = re.compile(r"^\+\+\+ (.*)$")
    HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
    RENAME_FROM_PATTERN = re.compile(r"^rename from (.*)$")
    RENAME_TO_PATTERN = re.compile(r"^rename to (.*)$")

    def parse(self, diff_text: str | None) -> list[FileChange]:
        """Parse a unified diff into structured FileChange objects."""
        if not diff_text or not diff_text.strip():
            return []

        files: list[_PendingFile] = []
        current_file: _PendingFile | None = None
        current_hunk: _PendingHunk | None = None

        for raw_line in diff_text.split("\n"):
            line = raw_line.rstrip("\r")

            # Body lines are consumed first so that "--- " or "+++ " inside a
            # hunk is never mistaken for a file header.
            if current_hunk is not None and current_hunk.is_open:
                if self._consume_hunk_line(current_hunk, line):
                    continue
                current_hunk = None

            if line.startswith("diff --git "):
                current_file = self._start_git_file(line)
                files.append(current_file)
                current_hunk = None
                continue

            if line.startswith("--- ") and (
                current_file is None or current_file.hunks or current_file.saw_old_header
            ):
                # Plain unified diff without a "diff --git" line.
                current_file = _PendingFile(source_path=None, destination_path=None)
                files.append(current_file)
                current_hunk = None

            if current_file is None:
                continue

            old_match = self.OLD_FILE_PATTERN.match(line)
            if old_match and not current_file.hunks:
                current_file.source_path = self._clean_path(old_match.group(1), "a/")
                current_file.saw_old_header = True
                continue

            new_match = self.NEW_FILE_PATTERN.match(line)
            if new_match and not current_file.hunks:
                current_file.destination_path = self._clean_path(new_match.group(1), "b/")
                continue

            if line.startswith("@@"):
                hunk_match = self.HUNK_HEADER_PATTERN.match(line)
                if not hunk_match:
                    current_file.malformed = True
                    current_hunk = None
                    continue

                current_hunk = _PendingHunk(
                    old_start=int(hunk_match.group(1)),
                    old_count=int(hunk_match.group(2) or 1),
                    new_start=int(hunk_match.group(3)),
                    new_count=int(hunk_match.group(4) or 1),
                    header=line,
                )
                current_file.hunks.append(current_hunk)
                continue

            self._apply_extended_header(current_file, line)

        parsed: list[FileChange] = []
        for pending in files:
            if pending.malformed or (
                pending.source_path is None and pending.destination_path is None
            ):
                logger.warning(
                    "Skipping unparseable file in diff",
                    source_path=pending.source_path,
                    destination_path=pending.destination_path,
                )
                continue
            parsed.append(pending.freeze())

        return parsed

    def _start_git_file(self, line: str) -> _PendingFile:
        match = self.FILE_HEADER_PATTERN.match(line) or self.BARE_FILE_HEADER_PATTERN.match(line)
        if not match:
            return _PendingFile(source_path=None, destination_path=None, malformed=True)
        return _PendingFile(source_path=match.group(1), destination_path=match.group(2))

    def _consume_hunk_line(self, hunk: _PendingHunk, line: str) -> bool:
        """Append one body line to the open hunk; False when the line is not body."""
        if line.startswith("\\"):
            # "\ No newline at end of file"
            return True

        if line.startswith("+"):
            hunk.lines.append(
                DiffLine(
                    type=LineType.ADDITION,
                    content=line[1:],
                    new_line_no=hunk.next_new,
                )
            )
            hunk.next_new += 1
            hunk.new_remaining -= 1
            return True

        if line.startswith("-"):
            hunk.lines.append(
                DiffLine(
                    type=LineType.DELETION,
                    content=line[1:],
                    old_line_no=hunk.next_old,
                )
            )
            hunk.next_old += 1
            hunk.old_remaining -= 1
            return True

        # Some tools strip the single space from blank context lines.
        if line.startswith(" ") or line == "":
            hunk.lines.append(
                DiffLine(
                    type=LineType.CONTEXT,
                    content=line[1:],
                    old_line_no=hunk.next_old,
                    new_line_no=hunk.next_new,
                )
            )
            hunk.next_old += 1
            hunk.next_new += 1
            hunk.old_remaining -= 1
            hunk.new_remaining -= 1
            return True

        return False

    def _apply_extended_header(self, pending: _PendingFile, line: str) -> None:
        if line.startswith("new file mode"):
            pending.source_path = None
        elif line.startswith("deleted file mode"):
            pending.destination_path = None
        elif line.startswith("Binary files ") or line.startswith("GIT binary patch"):
            pending.is_binary = True
        elif rename_from := self.RENAME_FROM_PATTERN.match(line):
            pending.source_path = rename_from.group(1)
            pending.renamed = True
        elif rename_to := self.RENAME_TO_PATTERN.match(line):
            pending.destination_path = rename_to.group(1)
            pending.renamed = True

    @staticmethod
    def _clean_path(raw: str, prefix: str) -> str | None:
        # Drop the optional "\t<timestamp>" suffix written by diff(1).
        path = raw.split("\t", 1)[0].strip()
        if path == DEV_NULL:
            return None
        if path.startswith(prefix):
            path = path[len(prefix) :]
        return path
