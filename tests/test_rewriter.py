"""Tests for the document rewriter."""

import time

import pytest

from textsweep.replace.rewriter import DocumentRewriter
from textsweep.search.code_search import DocumentScanner
from textsweep.search.errors import DocumentIOError, PatternTimeoutError, PositionMismatchWarning
from textsweep.search.models import MatchRecord, SearchOptions


async def scan(store, query, options, document="doc.txt"):
    registry = await DocumentScanner(store).scan(query, options)
    return registry.for_document(document)


class TestTargetedSingleLine:

    @pytest.mark.asyncio
    async def test_replace_only_second_identical_match(self, store, literal):
        """Test that only the selected occurrence changes."""
        store.add("doc.txt", "test test test TEST")
        matches = await scan(store, "test", literal)

        result = await DocumentRewriter(store).rewrite("doc.txt", [matches[1]], "SECOND", literal)

        assert store.content("doc.txt") == "test SECOND test TEST"
        assert result.replacements == 1
        assert result.applied == [matches[1]]
        assert result.modified_lines == {0}
        assert result.written

    @pytest.mark.asyncio
    async def test_second_occurrence_leaves_first_alone(self, store, literal):
        """Test replacing a later occurrence with different case."""
        store.add("doc.txt", "Use `pinto` does not match `Pinto`")
        matches = await scan(store, "pinto", literal)

        await DocumentRewriter(store).rewrite("doc.txt", [matches[1]], "REPLACED", literal)

        assert store.content("doc.txt") == "Use `pinto` does not match `REPLACED`"

    @pytest.mark.asyncio
    async def test_several_matches_on_a_line_apply_right_to_left(self, store, regex_options):
        """Test that earlier offsets stay valid while a line is rewritten."""
        store.add("doc.txt", "a1 b2 c3\nd4")
        matches = await scan(store, r"([a-z])(\d)", regex_options)

        result = await DocumentRewriter(store).rewrite("doc.txt", matches, "$2$1$1", regex_options)

        assert store.content("doc.txt") == "1aa 2bb 3cc\n4dd"
        assert result.replacements == 4
        assert result.modified_lines == {0, 1}

    @pytest.mark.asyncio
    async def test_literal_template_is_inserted_verbatim(self, store, literal):
        """Test that $ tokens are plain text in literal mode."""
        store.add("doc.txt", "price: TBD")
        matches = await scan(store, "TBD", literal)

        await DocumentRewriter(store).rewrite("doc.txt", matches, "$1 literal", literal)

        assert store.content("doc.txt") == "price: $1 literal"

    @pytest.mark.asyncio
    async def test_drifted_content_is_skipped(self, store, literal):
        """Test that a match whose text moved is skipped with a warning."""
        store.add("doc.txt", "alpha beta")
        matches = await scan(store, "beta", literal)
        store.add("doc.txt", "alpha gamma beta")

        with pytest.warns(PositionMismatchWarning):
            result = await DocumentRewriter(store).rewrite("doc.txt", matches, "X", literal)

        assert result.replacements == 0
        assert result.skipped == matches
        assert not result.written
        assert store.write_count == 0
        assert store.content("doc.txt") == "alpha gamma beta"

    @pytest.mark.asyncio
    async def test_missing_line_is_skipped(self, store, literal):
        """Test that a match on a line that no longer exists is skipped."""
        store.add("doc.txt", "one\ntwo\nthree")
        matches = await scan(store, "three", literal)
        store.add("doc.txt", "one")

        with pytest.warns(PositionMismatchWarning):
            result = await DocumentRewriter(store).rewrite("doc.txt", matches, "X", literal)
        assert result.skipped == matches

    @pytest.mark.asyncio
    async def test_match_everything_replaces_whole_line(self, store, regex_options):
        """Test targeted replacement with a match-everything pattern."""
        store.add("doc.txt", "one\n\ntwo")
        matches = await scan(store, ".", regex_options)

        await DocumentRewriter(store).rewrite("doc.txt", [matches[1]], "[$&]", regex_options)

        assert store.content("doc.txt") == "one\n\n[two]"


class TestReplaceAllSingleLine:

    @pytest.mark.asyncio
    async def test_every_occurrence_on_matched_lines(self, store, literal):
        """Test replace-all on the lines that hold recorded matches."""
        store.add("doc.txt", "foo bar FOO\nbaz\nfoo")
        matches = await scan(store, "foo", literal)

        result = await DocumentRewriter(store).rewrite(
            "doc.txt", matches, "X", literal, replace_all_in_document=True
        )

        assert store.content("doc.txt") == "X bar X\nbaz\nX"
        assert result.replacements == 3
        assert result.modified_lines == {0, 2}
        assert store.write_count == 1

    @pytest.mark.asyncio
    async def test_line_that_no_longer_verifies_is_left_alone(self, store, literal):
        """Test that replace-all leaves a changed line untouched."""
        store.add("doc.txt", "foo bar foo\nbaz\nfoo")
        matches = await scan(store, "foo", literal)
        store.add("doc.txt", "foo bar foo\nbaz\nnothing")

        with pytest.warns(PositionMismatchWarning):
            result = await DocumentRewriter(store).rewrite(
                "doc.txt", matches, "X", literal, replace_all_in_document=True
            )

        assert store.content("doc.txt") == "X bar X\nbaz\nnothing"
        assert len(result.skipped) == 1
        assert result.skipped[0].line == 2

    @pytest.mark.asyncio
    async def test_zero_length_matches_are_untouched(self, store, regex_options):
        """Test that replace-all leaves empty matches alone."""
        store.add("doc.txt", "axb")
        matches = await scan(store, "x*", regex_options)

        result = await DocumentRewriter(store).rewrite(
            "doc.txt", matches, "Y", regex_options, replace_all_in_document=True
        )

        assert store.content("doc.txt") == "aYb"
        assert result.replacements == 1

    @pytest.mark.asyncio
    async def test_match_everything(self, store, regex_options):
        """Test replace-all with a match-everything pattern."""
        store.add("doc.txt", "one\ntwo")
        matches = await scan(store, ".*", regex_options)

        result = await DocumentRewriter(store).rewrite(
            "doc.txt", matches, "[$&]", regex_options, replace_all_in_document=True
        )

        assert store.content("doc.txt") == "[one]\n[two]"
        assert result.replacements == 2


class TestMultiline:

    CONTENT = "first line\nsecond work\nThird\nwork\nThird again"

    @pytest.mark.asyncio
    async def test_targeted_replacement(self, store, multiline_options):
        """Test replacing one match that spans lines."""
        store.add("doc.txt", self.CONTENT)
        matches = await scan(store, r"work\nThird", multiline_options)
        assert [(m.line, m.col) for m in matches] == [(1, 7), (3, 0)]

        result = await DocumentRewriter(store).rewrite("doc.txt", [matches[1]], "DONE", multiline_options)

        assert store.content("doc.txt") == "first line\nsecond work\nThird\nDONE again"
        assert result.modified_lines == {3, 4}

    @pytest.mark.asyncio
    async def test_targeted_replacement_of_all_matches(self, store, multiline_options):
        """Test targeting every multi-line match at once."""
        store.add("doc.txt", self.CONTENT)
        matches = await scan(store, r"(work)\n(Third)", multiline_options)

        await DocumentRewriter(store).rewrite("doc.txt", matches, "$2 $1", multiline_options)

        assert store.content("doc.txt") == "first line\nsecond Third work\nThird work again"

    @pytest.mark.asyncio
    async def test_replace_all(self, store, multiline_options):
        """Test replace-all across a whole multi-line document."""
        store.add("doc.txt", self.CONTENT)
        matches = await scan(store, r"work\nThird", multiline_options)

        result = await DocumentRewriter(store).rewrite(
            "doc.txt", matches, "DONE", multiline_options, replace_all_in_document=True
        )

        assert store.content("doc.txt") == "first line\nsecond DONE\nDONE again"
        assert result.replacements == 2
        assert store.write_count == 1

    @pytest.mark.asyncio
    async def test_drift_skips_match(self, store, multiline_options):
        """Test that a drifted multi-line match is skipped."""
        store.add("doc.txt", self.CONTENT)
        matches = await scan(store, r"work\nThird", multiline_options)
        store.add("doc.txt", "changed\n" + self.CONTENT)

        with pytest.warns(PositionMismatchWarning):
            result = await DocumentRewriter(store).rewrite("doc.txt", matches, "DONE", multiline_options)

        assert result.replacements == 0
        assert store.write_count == 0


class TestFailures:

    @pytest.mark.asyncio
    async def test_timeout_abandons_document(self, store, regex_options):
        """Test that a timeout raises and writes nothing."""
        store.add("doc.txt", "aaa bbb aaa")
        matches = await scan(store, "a+", regex_options)

        rewriter = DocumentRewriter(store, pattern_timeout=0)
        with pytest.raises(PatternTimeoutError) as exc_info:
            await rewriter.rewrite("doc.txt", matches, "X", regex_options)

        assert exc_info.value.document == "doc.txt"
        assert store.write_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("replace_all", [False, True])
    async def test_catastrophic_backtracking_is_cut_off(self, store, regex_options, replace_all):
        """Test that a backtracking-heavy pattern stops near its time budget."""
        line = "a" * 40 + "!"
        store.add("doc.txt", line)
        record = MatchRecord("doc.txt", 0, 0, line, "a" * 40, r"^(a|aa)+$")
        rewriter = DocumentRewriter(store, pattern_timeout=0.5)

        started = time.monotonic()
        with pytest.raises(PatternTimeoutError):
            await rewriter.rewrite("doc.txt", [record], "X", regex_options, replace_all_in_document=replace_all)
        elapsed = time.monotonic() - started

        assert elapsed < 5
        assert store.content("doc.txt") == line
        assert store.write_count == 0

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, store, literal):
        """Test that a failed write surfaces as DocumentIOError."""
        store.add("doc.txt", "hit")
        matches = await scan(store, "hit", literal)
        store.fail_writes_for.add("doc.txt")

        with pytest.raises(DocumentIOError):
            await DocumentRewriter(store).rewrite("doc.txt", matches, "miss", literal)

    @pytest.mark.asyncio
    async def test_no_matches_reads_nothing(self, store, literal):
        """Test that an empty match list touches nothing."""
        result = await DocumentRewriter(store).rewrite("absent.txt", [], "X", literal)
        assert result.replacements == 0
        assert not result.written


@pytest.mark.asyncio
async def test_whole_word_case_sensitive(store):
    """Test whole-word, case-sensitive replace-all."""
    options = SearchOptions(match_case=True, whole_word=True)
    store.add("doc.txt", "Cat cat concat cat")
    matches = await scan(store, "cat", options)
    assert [m.col for m in matches] == [4, 15]

    await DocumentRewriter(store).rewrite("doc.txt", matches, "dog", options, replace_all_in_document=True)

    assert store.content("doc.txt") == "Cat dog concat dog"
