"""
Layout engine tests.

With default settings: top guide line y=50, center line y=85, lyrics at
y=150, beat counters at y=170, first beat at x=50.
"""

import logging

import pytest

from chuk_mcp_fqs.compiler.layout import LayoutEngine, pitch_y
from chuk_mcp_fqs.config import LayoutSettings
from chuk_mcp_fqs.models.layout import BlockLayout, DrawCommand
from chuk_mcp_fqs.models.score import Score
from chuk_mcp_fqs.parsing import parse

CENTER = 85.0
STEP = 35 / 12


def lay_out(lyrics: str, pitches: str = "c |", settings: LayoutSettings | None = None) -> BlockLayout:
    score = parse(f"T\n\n{lyrics}\n{pitches}\n")
    return LayoutEngine(settings).layout(score).blocks[0]


def counters(block: BlockLayout) -> list[str]:
    return [
        c.text
        for c in block.commands
        if c.type == "text" and c.attributes.get("class") == "beat-counter"
    ]


def pitch_glyphs(block: BlockLayout) -> list[DrawCommand]:
    return [c for c in block.commands if c.type == "text" and c.font == LayoutSettings().pitch_font]


def lyric_texts(block: BlockLayout) -> list[str]:
    return [c.text for c in block.commands if c.type == "text" and c.font == LayoutSettings().lyric_font]


class TestPitchY:
    """Test vertical placement."""

    def test_g_on_center_line(self) -> None:
        """g natural in the reference octave sits on the center line."""
        assert pitch_y(CENTER, 4, "g", "%", 4, 35) == CENTER

    def test_octave_up_is_one_spacing_higher(self) -> None:
        """Each octave above the reference moves up one line spacing."""
        assert pitch_y(CENTER, 5, "g", "%", 4, 35) == CENTER - 35

    def test_reference_octave_shifts_staff(self) -> None:
        """Lowering the reference octave raises a fixed pitch on the page."""
        assert pitch_y(CENTER, 4, "g", "%", 3, 35) == CENTER - 35

    def test_middle_c(self) -> None:
        """c natural is seven steps below g."""
        assert pitch_y(CENTER, 4, "c", "%", 4, 35) == pytest.approx(CENTER + 7 * STEP)

    def test_sharp_and_flat_positions(self) -> None:
        """f sharp and g flat share a height."""
        assert pitch_y(CENTER, 4, "f", "#", 4, 35) == pytest.approx(CENTER + 1.8 * STEP)
        assert pitch_y(CENTER, 4, "g", "&", 4, 35) == pytest.approx(CENTER + 1 * STEP)

    def test_unknown_combination_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """An unknown letter falls back to the center line with a warning."""
        with caplog.at_level(logging.WARNING, logger="chuk_mcp_fqs.compiler.layout"):
            assert pitch_y(CENTER, 4, "h", "%", 4, 35) == CENTER
        assert "No vertical offset" in caplog.text


class TestTitle:
    """Test title commands."""

    def test_title_lines_centered(self) -> None:
        """One centered text command per title line."""
        score = parse("Amazing Grace\nJohn Newton\n")
        title = LayoutEngine().layout(score).title
        assert [c.text for c in title] == ["Amazing Grace", "John Newton"]
        assert [c.y for c in title] == [50, 80]
        assert all(c.anchor == "middle" and c.x == 400 for c in title)

    def test_empty_score(self) -> None:
        """No title and no blocks lay out to nothing."""
        layout = LayoutEngine().layout(Score())
        assert layout.title == []
        assert layout.blocks == []


class TestBlockLayout:
    """Test block commands."""

    def test_guide_lines(self, simple_score: Score) -> None:
        """Three guide lines at the reference octave and one octave either side."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        guides = block.commands[:3]
        assert all(c.type == "line" and c.stroke == "#e0e0e0" for c in guides)
        assert sorted(c.y for c in guides) == [50, 85, 120]

    def test_lyrics_and_pitches(self, simple_score: Score) -> None:
        """Each attack draws one pitch letter above its syllable."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        assert lyric_texts(block) == ["Do", "Re", "Mi"]
        glyphs = pitch_glyphs(block)
        assert [g.text for g in glyphs] == ["c", "d", "e"]
        assert all(g.color == "black" for g in glyphs)
        assert glyphs[0].x == 50
        assert glyphs[0].y == pytest.approx(CENTER + 7 * STEP)
        # higher pitches are drawn higher up
        assert glyphs[0].y > glyphs[1].y > glyphs[2].y

    def test_cursor_advance(self) -> None:
        """Beats advance by text width plus the beat gap."""
        block = lay_out("Do Re |", "c d |")
        lyrics = [c for c in block.commands if c.text in ("Do", "Re")]
        assert lyrics[1].x == pytest.approx(50 + 2 * 9.6 + 10)

    def test_barline(self, simple_score: Score) -> None:
        """A barline is a vertical line spanning staff to counters."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        barlines = [c for c in block.commands if c.type == "line" and c.stroke == "#aaa"]
        assert len(barlines) == 1
        assert barlines[0].x == barlines[0].x2
        assert (barlines[0].y, barlines[0].y2) == (30, 175)

    def test_accidental_colors(self) -> None:
        """Sharps are red, flats blue, naturals black."""
        block = lay_out("Fa Ti Do |", "[K#1] f &b c |")
        assert [g.color for g in pitch_glyphs(block)] == ["#d00", "#00d", "black"]

    def test_natural_overrides_key(self) -> None:
        """An explicit natural cancels the key signature."""
        block = lay_out("Fa |", "[K#1] %f |")
        assert pitch_glyphs(block)[0].color == "black"

    def test_accidental_memory_reset_at_barline(self) -> None:
        """An accidental lasts until the next barline."""
        block = lay_out("Fa Fa | Fa |", "#f f | f |")
        assert [g.color for g in pitch_glyphs(block)] == ["#d00", "#d00", "black"]

    def test_chord_stagger(self) -> None:
        """Chord members alternate right and left of the beat."""
        block = lay_out("Do |", "(ceg) |")
        assert [g.x for g in pitch_glyphs(block)] == [54, 46, 54]

    def test_missing_pitches_draw_nothing(self) -> None:
        """Attacks beyond the pitch measure draw no pitch."""
        block = lay_out("Do Re Mi |", "c |")
        assert len(pitch_glyphs(block)) == 1
        assert lyric_texts(block) == ["Do", "Re", "Mi"]


class TestBeatCounters:
    """Test beat counters."""

    def test_counting(self, simple_score: Score) -> None:
        """Counters start at 1 and count beats."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        assert counters(block) == ["1", "2", "3"]

    def test_barline_resets(self) -> None:
        """Every measure counts from 1."""
        assert counters(lay_out("Do Re | Mi |", "c d | e |")) == ["1", "2", "1"]

    def test_pickup(self) -> None:
        """N sets the next counter value."""
        assert counters(lay_out("[N4] Do | Re |", "c | d |")) == ["4", "1"]

    def test_duration_prefix_scales_counter(self) -> None:
        """A "2Se" beat counts as two."""
        assert counters(lay_out("2Se Do |", "c d e |")) == ["1", "3"]

    def test_directive_only_beat_is_not_counted(self) -> None:
        """A beat with no subdivisions gets no counter."""
        block = lay_out("Do [T90] |", "c |")
        assert counters(block) == ["1"]
        assert any(c.text == "T90" and c.y == 20 for c in block.commands)

    def test_highlight_attributes(self) -> None:
        """Counters and circles carry block and beat indices."""
        layout = LayoutEngine().layout(parse("T\n\nDo |\nc |\n\nRe Mi |\nd e |\n"))
        text = [c for c in layout.blocks[1].commands if c.attributes.get("class") == "beat-counter"]
        circles = [c for c in layout.blocks[1].commands if c.type == "circle"]
        assert [c.attributes["data-beat-idx"] for c in text] == ["0", "1"]
        assert all(c.attributes["data-block-idx"] == "1" for c in text + circles)
        assert [c.attributes["class"] for c in circles] == ["beat-circle", "beat-circle"]
        assert all(c.fill == "none" and c.r == 8 for c in circles)


class TestAnnotations:
    """Test tempo and reference-octave annotations."""

    def test_inline_tempo_annotation(self) -> None:
        """An inline T draws T<bpm> above the staff."""
        block = lay_out("Do [T90]Re |", "c d |")
        tempo = [c for c in block.commands if c.text == "T90"]
        assert len(tempo) == 1
        assert tempo[0].y == 20
        assert tempo[0].x == pytest.approx(50 + 2 * 9.6 + 10)

    def test_reference_octave_annotation(self) -> None:
        """A consumed O directive draws G<octave> on the center line."""
        block = lay_out("Do |", "[O5] ^c |")
        marks = [c for c in block.commands if c.text == "G5"]
        assert len(marks) == 1
        assert (marks[0].x, marks[0].y) == (35, 90)

    def test_reference_octave_moves_pitches(self) -> None:
        """Pitches are placed relative to the reference octave."""
        block = lay_out("Do |", "[O5] ^^g |")
        assert pitch_glyphs(block)[0].y == pytest.approx(CENTER)


class TestBounds:
    """Test block sizing and normalization."""

    def test_minimum_height(self, simple_score: Score) -> None:
        """Height reaches below the beat counters."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        assert block.height >= 170 + 50

    def test_commands_inside_bounds(self, simple_score: Score) -> None:
        """Every coordinate lies within the block size."""
        block = LayoutEngine().layout(simple_score).blocks[0]
        for c in block.commands:
            assert 0 <= c.x <= block.width
            assert 0 <= c.y <= block.height

    def test_high_pitches_shift_block_down(self) -> None:
        """Nothing is drawn above y=0."""
        block = lay_out("Do |", "^^^^c |")
        for c in block.commands:
            top = c.y - 20 if c.type == "text" else c.y
            assert top >= -1e-9
            assert c.y <= block.height

    def test_custom_settings(self) -> None:
        """Spacing comes from LayoutSettings."""
        settings = LayoutSettings(staff_line_spacing=40, top_margin=60)
        block = lay_out("Do |", "c |", settings)
        assert sorted(c.y for c in block.commands[:3]) == [60, 100, 140]
