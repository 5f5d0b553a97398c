import pytest

from lesser.sources.multiplexer import MERGED, SourceMultiplexer, merge_key


def clock(seconds):
    return f"{seconds // 3600:02d}:{(seconds // 60) % 60:02d}:{seconds % 60:02d}"


def texts(lines):
    return [line.text for line in lines]


class TestMergedOrdering:
    """Test timestamp ordering of the merged view"""

    def test_two_sources_interleave_by_time(self, make_multiplexer):
        mux = make_multiplexer(
            ["10:00 a", "10:02 c"],
            ["10:01 b", "10:03 d"],
            parse_timestamps=True,
            merged=True,
        )
        view = mux.view()
        assert view.length() == 4
        assert texts(view.window(0, 10)) == ["10:00 a", "10:01 b", "10:02 c", "10:03 d"]

    def test_merge_is_deterministic(self, make_multiplexer):
        mux = make_multiplexer(
            ["10:00 a", "10:02 c"],
            ["10:01 b", "10:03 d"],
            parse_timestamps=True,
            merged=True,
        )
        first = texts(mux.view().window(0, 4))
        second = texts(mux.view().window(0, 4))
        assert first == second

    def test_equal_timestamps_ordered_by_source(self, make_multiplexer):
        mux = make_multiplexer(["10:00 from zero"], ["10:00 from one"],
                               parse_timestamps=True, merged=True)
        assert texts(mux.view().window(0, 2)) == ["10:00 from zero", "10:00 from one"]

    def test_continuation_lines_stay_with_their_entry(self, make_multiplexer):
        mux = make_multiplexer(
            ["10:00 start", "  detail", "10:05 end"],
            ["10:03 other"],
            parse_timestamps=True,
            merged=True,
        )
        assert texts(mux.view().window(0, 4)) == ["10:00 start", "  detail", "10:03 other", "10:05 end"]

    def test_lines_without_timestamps_sort_first(self, make_multiplexer):
        mux = make_multiplexer(["10:00 a"], ["banner", "10:01 b"],
                               parse_timestamps=True, merged=True)
        assert texts(mux.view().window(0, 3)) == ["banner", "10:00 a", "10:01 b"]

    def test_out_of_order_source_positions_match_window(self, make_multiplexer):
        mux = make_multiplexer(["10:00:05 a", "10:00:01 b"], ["10:00:03 c"],
                               parse_timestamps=True, merged=True)
        view = mux.view()
        window = view.window(0, 10)
        assert texts(window) == ["10:00:03 c", "10:00:05 a", "10:00:01 b"]
        for position, line in enumerate(window):
            assert view.position_of(line) == position
            assert view.window(position, 1) == [line]

    def test_time_only_lines_dated_from_their_source(self, make_multiplexer):
        mux = make_multiplexer(
            ["2026-10-18 10:00:00 full", "10:00:05 time only"],
            ["2026-10-18 10:00:02 other"],
            parse_timestamps=True,
            merged=True,
        )
        assert texts(mux.view().window(0, 3)) == [
            "2026-10-18 10:00:00 full",
            "2026-10-18 10:00:02 other",
            "10:00:05 time only",
        ]


class TestMergedWindows:
    """Test windows and positions against a fully sorted reference"""

    @pytest.fixture
    def large(self, make_multiplexer):
        even = [f"{clock(i * 2)} even {i}" for i in range(400)]
        odd = [f"{clock(i * 3 + 1)} odd {i}" for i in range(300)]
        mux = make_multiplexer(even, odd, parse_timestamps=True, merged=True)
        everything = [line for source in mux for line in source.store.slice(0)]
        return mux, sorted(everything, key=merge_key)

    def test_windows_match_reference(self, large):
        mux, reference = large
        view = mux.view()
        for top in (0, 1, 57, 350, 698, 699, 350, 20, 0, 690):
            assert view.window(top, 12) == reference[top:top + 12]

    def test_window_past_end_is_short(self, large):
        mux, reference = large
        assert mux.view().window(695, 20) == reference[695:]
        assert mux.view().window(800, 20) == []

    def test_position_of_every_line(self, large):
        mux, reference = large
        view = mux.view()
        for position in (0, 1, 2, 100, 399, 698, 699):
            assert view.position_of(reference[position]) == position

    def test_windows_after_append(self, large):
        mux, reference = large
        view = mux.view()
        view.window(300, 10)

        even_store = mux.get(0).store
        even_store.append(f"{clock(900)} late even")
        everything = [line for source in mux for line in source.store.slice(0)]
        reference = sorted(everything, key=merge_key)

        assert view.length() == 701
        assert view.window(300, 10) == reference[300:310]
        assert view.window(695, 10) == reference[695:]

    def test_windows_after_reset(self, large):
        mux, _ = large
        view = mux.view()
        view.window(500, 10)

        mux.get(1).store.reset()
        assert view.length() == 400
        assert texts(view.window(0, 2)) == [f"{clock(0)} even 0", f"{clock(2)} even 1"]


class TestSourceSelection:
    """Test active source switching"""

    def test_requires_a_source(self):
        with pytest.raises(ValueError):
            SourceMultiplexer([])

    def test_switch_next_cycles(self, make_multiplexer):
        mux = make_multiplexer(["a"], ["b"], ["c"])
        assert mux.active_key == 0
        assert mux.switch_next() == 1
        assert mux.switch_next() == 2
        assert mux.switch_next() == 0

    def test_single_source_view(self, make_multiplexer):
        mux = make_multiplexer(["a", "b"], ["c"])
        view = mux.view()
        assert view.label == "src0"
        assert texts(view.window(1, 5)) == ["b"]
        other_line = mux.get(1).store.get(0)
        assert view.position_of(other_line) is None

    def test_toggle_merged(self, make_multiplexer):
        mux = make_multiplexer(["a"], ["b"])
        assert mux.toggle_merged() == MERGED
        assert mux.view().label == "merged"
        assert len(mux.stores_in_scope()) == 2
        assert mux.toggle_merged() == 0
        assert mux.stores_in_scope() == [mux.get(0).store]

    def test_switch_leaves_merged_view(self, make_multiplexer):
        mux = make_multiplexer(["a"], ["b"], merged=True)
        assert mux.switch_next() == 1
        assert not mux.merged
