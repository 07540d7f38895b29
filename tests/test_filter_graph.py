"""Tests for the filter graph builder."""

import pytest

from storyboard_producer.workflow.filter_graph import FilterGraph, format_seconds


def test_format_seconds():
    assert format_seconds(7.5) == "7.500"
    assert format_seconds(0) == "0.000"


def test_render_joins_chains():
    graph = FilterGraph()
    graph.add(["0:v"], ["fade=t=in:st=0:d=1", "fade=t=out:st=5:d=1"], "v0")
    graph.add(["v0", "1:v"], "xfade=transition=fade:duration=1:offset=5", "outv")

    assert len(graph) == 2
    assert graph.render() == (
        "[0:v]fade=t=in:st=0:d=1,fade=t=out:st=5:d=1[v0];"
        "[v0][1:v]xfade=transition=fade:duration=1:offset=5[outv]"
    )


def test_add_returns_output_labels():
    graph = FilterGraph()

    assert graph.add(["0:v", "0:a"], "concat=n=1:v=1:a=1", ["outv", "outa"]) == ["outv", "outa"]


def test_duplicate_output_label():
    graph = FilterGraph()
    graph.add(["0:v"], "null", "v0")

    with pytest.raises(ValueError, match="v0"):
        graph.add(["1:v"], "null", "v0")


def test_empty_graph():
    assert FilterGraph().render() == ""
