"""Tests for the three-way merge engine."""

import pytest

from versemerge.core.merge.three_way import ThreeWayMergeEngine, merge, merge_clever
from versemerge.core.models import ConflictRecord, Granularity, LineClassification

VERSE_4 = "\\v 4 Abalindi basebethuthumela ngokuyesaba, baba njengabafileyo\\x + 27.65,66.\\x*."

SAMPLES = [
    "",
    "single line",
    "\\c 1\n\\p\n\\v 1 In the beginning.\n\\v 2 Void.",
    "a\n\nb",
]


class TestMergeProperties:
    """Properties every merge must satisfy."""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_unchanged(self, text):
        assert merge(text, text, text) == (text, [])

    @pytest.mark.parametrize("text", SAMPLES)
    def test_one_sided_edits_pass_through(self, text):
        edited = "\\c 9\n" + text + "\nextra line"
        assert merge(text, edited, text) == (edited, [])
        assert merge(text, text, edited) == (edited, [])

    def test_same_edit_on_both_sides(self):
        base = "\\c 28\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n"
        both = "\\c 28\n\\s Ukuvuka kukaJesu\n\\s Ukuvuka kukaJesu\n"
        assert merge(base, both, both) == ("\\c 28\n\\s Ukuvuka kukaJesu\n\\s Ukuvuka kukaJesu", [])

    def test_deterministic(self):
        base = "a b c\nd e f"
        local = "a x c\nd e f"
        remote = "a y c\nd e g"
        assert merge(base, local, remote) == merge(base, local, remote)

    def test_trailing_newlines_are_stripped(self):
        assert merge("a\n", "a\n\n\n", "a\n")[0] == "a"

    def test_trailing_newlines_can_be_kept(self):
        engine = ThreeWayMergeEngine(strip_trailing_newlines=False)
        result = engine.merge("a\nb\n", "a\n\n", "a\nb\n")
        assert result.merged_text == "a\n"


class TestLineMerge:
    """Changes on different lines."""

    def test_simple_modifications(self):
        base = "\\c 28\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n"
        local = "\\c 28\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n\\s Ukuvuka kukaJesu\n"
        remote = "\\c 29\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n"
        output, conflicts = merge(base, local, remote)
        assert output == "\\c 29\n\\s Ukuvuka lokuzibonakalisa kukaJesu\n\\s Ukuvuka kukaJesu"
        assert conflicts == []

    def test_realistic_example(self, five_verses):
        local = five_verses.replace(" (2nd)", "").replace(" (3rd)", "")
        remote = five_verses.replace(" (1st)", "").replace(" (4th)", "")
        output, conflicts = merge(five_verses, local, remote)
        assert output == (
            "\\c 1\n"
            "\\p\n"
            "\\v 1 This is really the text of the first verse.\n"
            "\\v 2 And this is what the second verse contains.\n"
            "\\v 3 The third verse.\n"
            "\\v 4 The fourth verse.\n"
            "\\v 5"
        )
        assert conflicts == []

    def test_insertions_at_same_place_remote_first(self):
        output, conflicts = merge("a\nz", "a\nlocal\nz", "a\nremote\nz")
        assert output == "a\nremote\nlocal\nz"
        assert conflicts == []

    def test_adjacent_changes_are_independent(self):
        output, conflicts = merge("a\nb\nc", "A\nb\nc", "a\nB\nc")
        assert output == "A\nB\nc"
        assert conflicts == []

    def test_deleted_and_changed_line_conflicts(self):
        output, conflicts = merge("a\nb\nc", "a\nc", "a\nB\nc")
        assert output == "a\nB\nc"
        assert conflicts == [ConflictRecord("line 2", "b", "", "B", "B")]

    def test_insertion_extending_the_other_side_is_kept_once(self):
        expected = ("a\nx\ny\nz", [])
        assert merge("a\nz", "a\nx\nz", "a\nx\ny\nz") == expected
        assert merge("a\nz", "a\nx\ny\nz", "a\nx\nz") == expected
        assert merge("a\nz", "a\ny\nz", "a\nx\ny\nz") == expected


class TestLineByLineFallback:
    """A block one side rewrote keeps the lines the other side left alone."""

    def test_one_sided_line_survives_neighbouring_conflict(self):
        output, conflicts = merge("a b\nc d", "A b\nc D", "a b\nc X")
        assert output == "A b\nc X"
        assert conflicts == [ConflictRecord("line 2", "c d", "c D", "c X", "c X")]

    def test_block_deletion_with_conflict_on_one_line(self):
        output, conflicts = merge("a\nb\nc", "c", "a\nB\nc")
        assert output == "B\nc"
        assert conflicts == [ConflictRecord("line 2", "b", "", "B", "B")]

    def test_only_conflicting_lines_are_labelled(self):
        base = "\\v 1 one\n\\v 2 two\n\\v 3 three"
        local = "\\v 1 One\n\\v 2 Two\n\\v 3 Three"
        remote = "\\v 1 one\n\\v 2 deux\n\\v 3 three"
        output, conflicts = merge(base, local, remote)
        assert output == "\\v 1 One\n\\v 2 deux\n\\v 3 Three"
        assert [c.label for c in conflicts] == ["line 2"]


class TestWordMerge:
    """Both sides changed the same line."""

    def test_disjoint_word_edits(self):
        base = f"\\c 28\n{VERSE_4}\n"
        local = base.replace("basebethuthumela", "bathuthumela")
        remote = base.replace("\\c 28", "\\c 29").replace(" baba ", " basebesiba ")
        output, conflicts = merge(base, local, remote)
        assert output == (
            "\\c 29\n"
            "\\v 4 Abalindi bathuthumela ngokuyesaba, basebesiba njengabafileyo\\x + 27.65,66.\\x*."
        )
        assert conflicts == []

    def test_same_word_edit_plus_remote_edit(self):
        base = f"\\c 28\n{VERSE_4}\n"
        local = base.replace("basebethuthumela", "bathuthumela")
        remote = local.replace("\\c 28", "\\c 29").replace(" baba ", " basebesiba ")
        output, conflicts = merge(base, local, remote)
        assert output == remote.rstrip("\n")
        assert conflicts == []

    def test_multiple_modifications(self):
        base = (
            "\\c 28\n"
            "\\s Ukuvuka lokuzibonakalisa kukaJesu\n"
            "\\p\n"
            "\\v 3 Lokubonakala kwayo kwakunjengombane\\x + Dan. 10.6. Hlu. 13.6.\\x*, lesembatho sayo sasimhlophe.\n"
            f"{VERSE_4}\n"
        )
        local = base.replace("\\c 28", "\\c 29").replace("Dan. 10.6. ", "")
        remote = (
            base.replace("lokuzibonakalisa kukaJesu", "lokuzibonakaliswa kwaJesu")
            .replace(", lesembatho", ", njalo isembatho")
        )
        output, conflicts = merge(base, local, remote)
        assert output == (
            "\\c 29\n"
            "\\s Ukuvuka lokuzibonakaliswa kwaJesu\n"
            "\\p\n"
            "\\v 3 Lokubonakala kwayo kwakunjengombane\\x + Hlu. 13.6.\\x*, njalo isembatho sayo sasimhlophe.\n"
            f"{VERSE_4}"
        )
        assert conflicts == []

    def test_word_merge_region_granularity(self, engine):
        base = "one two three"
        result = engine.merge(base, "ONE two three", "one two THREE")
        assert result.merged_text == "ONE two THREE"
        region = [r for r in result.regions if r.classification == LineClassification.BOTH_DIFFERENT][0]
        assert region.granularity == Granularity.WORD


class TestGraphemeMerge:
    """Both sides changed the same word."""

    def test_neighbouring_words(self):
        base = f"\\c 28\n{VERSE_4}\n"
        local = base.replace("basebethuthumela", "bathuthumela")
        remote = base.replace("\\c 28", "\\c 29").replace("ngokuyesaba, baba", "besabe baba")
        output, conflicts = merge(base, local, remote)
        assert output == (
            "\\c 29\n"
            "\\v 4 Abalindi bathuthumela besabe baba njengabafileyo\\x + 27.65,66.\\x*."
        )
        assert conflicts == []

    def test_similar_word_edits_merge_graphemes(self, engine):
        result = engine.merge("abcdef ghi", "Abcdef ghi", "abcdeF ghi")
        assert result.merged_text == "AbcdeF ghi"
        assert result.conflicts == []
        assert result.regions[0].granularity == Granularity.GRAPHEME

    def test_dissimilar_word_edits_conflict(self, engine):
        result = engine.merge("word", "alpha", "omega")
        assert result.merged_text == "omega"
        assert result.conflicts == [ConflictRecord("line 1", "word", "alpha", "omega", "omega")]

    def test_threshold_is_configurable(self):
        strict = ThreeWayMergeEngine(grapheme_similarity_threshold=101)
        result = strict.merge("abcdef", "Abcdef", "abcdeF")
        assert result.merged_text == "abcdeF"
        assert result.conflict_count == 1


class TestConflicts:
    """Remote wins when no granularity reconciles the edits."""

    def test_server_version_wins(self):
        base = f"\\c 28\n{VERSE_4}\n"
        local = base.replace("ngokuyesaba,", "ngokuyesaba")
        remote = base.replace("\\c 28", "\\c 29").replace("ngokuyesaba,", "ngokuyesaba;")
        output, conflicts = merge(base, local, remote)
        assert output == remote.rstrip("\n")
        assert len(conflicts) == 1

        record = conflicts[0]
        assert record.label == "line 2"
        assert record.ancestor == VERSE_4
        assert record.local == local.splitlines()[1]
        assert record.remote == remote.splitlines()[1]
        assert record.merged == remote.splitlines()[1]

    def test_conflicts_in_document_order(self):
        base = "first\nkeep\nsecond"
        local = "alpha\nkeep\ngamma"
        remote = "omega\nkeep\nsigma"
        output, conflicts = merge(base, local, remote)
        assert output == "omega\nkeep\nsigma"
        assert [c.label for c in conflicts] == ["line 1", "line 3"]

    def test_result_object(self, engine):
        result = engine.merge("word", "alpha", "omega")
        assert result.has_conflicts
        assert result.as_tuple() == ("omega", result.conflicts)
        assert result.regions[0].is_conflict


class TestVerseAwareMerge:
    """Merges that join or split verses."""

    def test_combining_verses(self, five_verses, combined_verses):
        expected = combined_verses.rstrip("\n")
        assert merge(five_verses, combined_verses, five_verses) == (expected, [])
        assert merge_clever(five_verses, combined_verses, five_verses) == (expected, [])

    def test_splitting_verses(self, five_verses, combined_verses):
        expected = five_verses.rstrip("\n")
        assert merge(combined_verses, five_verses, combined_verses) == (expected, [])
        assert merge_clever(combined_verses, five_verses, combined_verses) == (expected, [])

    def test_chapter_zero(self):
        base = "\\id GEN\n\\p Some text one.\n"
        local = "\\id GEN\n\\p Some text two.\n"
        expected = ("\\id GEN\n\\p Some text two.", [])
        assert merge_clever(base, local, base) == expected
        assert merge(base, local, base, verse_aware=True) == expected

    def test_combined_verses_with_remote_edit_elsewhere(self, five_verses, combined_verses):
        remote = five_verses.replace("The fourth (4th) verse.", "The fourth verse.")
        output, conflicts = merge_clever(five_verses, combined_verses, remote)
        assert output == combined_verses.replace("The fourth (4th) verse.", "The fourth verse.").rstrip("\n")
        assert conflicts == []

    def test_conflict_label_uses_original_lines(self, five_verses, combined_verses):
        remote = five_verses.replace("(2nd)", "(second)")
        output, conflicts = merge_clever(five_verses, combined_verses, remote)
        assert len(conflicts) == 1
        assert conflicts[0].label == "lines 3-4"
        assert output == remote.replace("The third (3rd) verse.", "The third verse.").rstrip("\n")


class TestMalformedText:
    """Text that cannot be encoded as UTF-8 still merges."""

    def test_lone_surrogate_conflict(self):
        output, conflicts = merge("abc\ud83d", "abd\ud83d", "abe\ud83d")
        assert output == "abe\ud83d"
        assert conflicts == [
            ConflictRecord("line 1", "abc\ud83d", "abd\ud83d", "abe\ud83d", "abe\ud83d")
        ]

    def test_lone_surrogate_grapheme_merge(self):
        assert merge("abcdef\ud83d", "Abcdef\ud83d", "abcdeF\ud83d") == ("AbcdeF\ud83d", [])

    def test_undecodable_bytes(self):
        def decode(raw):
            return raw.decode("utf-8", "surrogateescape")

        base = decode(b"caf\xe9 au lait")
        local = decode(b"Caf\xe9 au lait")
        remote = decode(b"caf\xe9 au LAIT")
        assert merge(base, local, remote) == (decode(b"Caf\xe9 au LAIT"), [])
