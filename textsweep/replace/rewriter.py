"""
Document rewriter: applies recorded matches to one document and writes it back once.
"""

import logging
import warnings
from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..search.code_search import LineIndex, iter_pattern_matches
from ..search.errors import PositionMismatchWarning
from ..search.models import MatchRecord, SearchOptions
from ..search.pattern_matcher import (
    DEFAULT_PATTERN_TIMEOUT,
    CompiledPattern,
    Deadline,
    PatternCompiler,
    bounded_search,
    bounded_subn,
)
from .models import RewriteResult
from .template import CapturedMatch, expand_replacement

if TYPE_CHECKING:
    from ..collaborators import DocumentStore


class DocumentRewriter:
    """
    Rewrites one document from a list of its recorded matches.

    Targeted replacements run from the highest position to the lowest so a
    substitution never moves the stored offset of a match still waiting to be
    applied. Every match is re-verified against the current text first;
    matches whose text drifted are skipped with a ``PositionMismatchWarning``.
    """

    def __init__(self,
                 store: "DocumentStore",
                 compiler: Optional[PatternCompiler] = None,
                 pattern_timeout: float = DEFAULT_PATTERN_TIMEOUT):
        """Initialize the document rewriter."""
        self.store = store
        self.compiler = compiler or PatternCompiler()
        self.pattern_timeout = pattern_timeout
        self.logger = logging.getLogger("textsweep.rewriter")

    async def rewrite(self,
                      document: str,
                      matches: Sequence[MatchRecord],
                      template: str,
                      options: SearchOptions,
                      replace_all_in_document: bool = False,
                      compiled: Optional[CompiledPattern] = None) -> RewriteResult:
        """
        Replace ``matches`` in ``document`` and write the result back.

        Args:
            document: Document to rewrite
            matches: Recorded matches belonging to ``document``
            template: Replacement template
            options: Options the matches were scanned with
            replace_all_in_document: Substitute every occurrence on each
                affected line (or in the whole text, in multi-line mode)
            compiled: Pattern to re-locate matches with; compiled from the
                first match's pattern when omitted

        Returns:
            RewriteResult describing applied and skipped matches

        Raises:
            PatternTimeoutError: If re-locating matches exceeds the time budget;
                nothing is written in that case
            DocumentIOError: If the document cannot be read or written
        """
        result = RewriteResult(document=document)
        if not matches:
            return result

        if compiled is None:
            compiled = self.compiler.compile(matches[0].pattern, options)

        content = await self.store.read_document(document)
        deadline = Deadline(self.pattern_timeout, document)

        if options.spans_lines:
            if replace_all_in_document:
                new_content = self._replace_all_multiline(content, matches, template, options, compiled, deadline, result)
            else:
                new_content = self._replace_targeted_multiline(content, matches, template, options, compiled, deadline, result)
        else:
            lines = content.split("\n")
            if replace_all_in_document:
                self._replace_all_lines(lines, matches, template, options, compiled, deadline, result)
            else:
                self._replace_targeted_lines(lines, matches, template, options, compiled, deadline, result)
            new_content = "\n".join(lines)

        if result.replacements > 0:
            await self.store.write_document(document, new_content)
            result.written = True
            self.logger.info(f"Applied {result.replacements} replacements to {document}")
        else:
            self.logger.debug(f"No replacements applied to {document}")

        return result

    def _replace_targeted_lines(self, lines, matches, template, options, compiled, deadline, result):
        ordered = sorted(matches, key=lambda m: (m.line, m.col), reverse=True)

        for record in ordered:
            if record.line >= len(lines):
                self._skip(result, record, None)
                continue

            line = lines[record.line]
            found = self._locate_in_line(compiled, line, record, deadline)
            if found is None or found.text != record.match_text:
                self._skip(result, record, found.text if found else None)
                continue

            replacement = expand_replacement(found, template, line, options)
            lines[record.line] = line[:found.start] + replacement + line[found.end:]
            result.replacements += 1
            result.applied.append(record)
            result.modified_lines.add(record.line)

    def _locate_in_line(self, compiled, line, record, deadline) -> Optional[CapturedMatch]:
        if compiled.matches_everything:
            return CapturedMatch((line,), 0) if record.col == 0 else None

        for match in iter_pattern_matches(compiled, line, deadline):
            if match.start() == record.col:
                return CapturedMatch.from_match(match)
            if match.start() > record.col:
                break
        return None

    def _replace_all_lines(self, lines, matches, template, options, compiled, deadline, result):
        by_line: Dict[int, List[MatchRecord]] = defaultdict(list)
        for record in matches:
            by_line[record.line].append(record)

        for line_number in sorted(by_line):
            verified = self._verify(lines, line_number, by_line[line_number], result)
            if not verified:
                continue

            line = lines[line_number]
            if compiled.matches_everything:
                new_line = expand_replacement(CapturedMatch((line,), 0), template, line, options)
                count = 1
            else:
                new_line, count = self._substitute(compiled, template, line, options, deadline)

            if count:
                lines[line_number] = new_line
                result.replacements += count
                result.applied.extend(verified)
                result.modified_lines.add(line_number)

    def _verify(self, lines, line_number, records, result) -> List[MatchRecord]:
        verified = []
        line = lines[line_number] if line_number < len(lines) else None
        for record in records:
            found = None if line is None else line[record.col:record.col + len(record.match_text)]
            if found == record.match_text:
                verified.append(record)
            else:
                self._skip(result, record, found)
        return verified

    def _replace_targeted_multiline(self, content, matches, template, options, compiled, deadline, result) -> str:
        starts = LineIndex(content).starts
        positioned = []
        for record in matches:
            if record.line >= len(starts):
                self._skip(result, record, None)
                continue
            positioned.append((starts[record.line] + record.col, record))

        for offset, record in sorted(positioned, key=lambda item: item[0], reverse=True):
            match = bounded_search(compiled.compiled, content, offset, deadline)
            if match is None or match.start() != offset or match.group() != record.match_text:
                found = match.group() if match is not None and match.start() == offset else None
                self._skip(result, record, found)
                continue

            captured = CapturedMatch.from_match(match)
            replacement = expand_replacement(captured, template, content, options)
            content = content[:captured.start] + replacement + content[captured.end:]
            result.replacements += 1
            result.applied.append(record)
            result.modified_lines.update(range(record.line, record.end_line + 1))

        return content

    def _replace_all_multiline(self, content, matches, template, options, compiled, deadline, result) -> str:
        starts = LineIndex(content).starts
        verified = []
        for record in matches:
            found = None
            if record.line < len(starts):
                offset = starts[record.line] + record.col
                found = content[offset:offset + len(record.match_text)]
            if found == record.match_text:
                verified.append(record)
            else:
                self._skip(result, record, found)

        if not verified:
            return content

        new_content, count = self._substitute(compiled, template, content, options, deadline)
        if count:
            result.replacements += count
            result.applied.extend(verified)
            for record in verified:
                result.modified_lines.update(range(record.line, record.end_line + 1))
        return new_content

    def _substitute(self, compiled, template, text, options, deadline):
        """Replace every non-empty match in ``text``; returns (new_text, count)."""
        count = 0

        def replace(match):
            nonlocal count
            if match.end() == match.start():
                return match.group()
            count += 1
            return expand_replacement(CapturedMatch.from_match(match), template, text, options)

        new_text, _ = bounded_subn(compiled.compiled, replace, text, deadline)
        return new_text, count

    def _skip(self, result: RewriteResult, record: MatchRecord, found: Optional[str]):
        message = (
            f"Content changed in {record.document} at line {record.line + 1}, "
            f"column {record.col}: expected {record.match_text!r}, found {found!r}; skipping match"
        )
        self.logger.warning(message)
        warnings.warn(message, PositionMismatchWarning, stacklevel=2)
        result.skipped.append(record)
