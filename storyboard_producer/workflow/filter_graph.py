"""
Filter Graph Builder
====================

Accumulates labelled ffmpeg filter chains and renders them as a single
``-filter_complex`` program.
"""

from typing import List, Sequence, Union


def format_seconds(value: float) -> str:
    """Render a time value the way it is written into filter arguments."""
    return f"{value:.3f}"


class FilterGraph:
    """
    Builder for ffmpeg filter graphs.

    Each ``add`` call appends one chain that reads the given pad labels and
    writes the given output labels. Labels are written without brackets:

        graph = FilterGraph()
        graph.add(["0:v", "1:v"], "xfade=transition=fade:duration=0.5:offset=7.5", "outv")
        graph.render()  # "[0:v][1:v]xfade=...[outv]"
    """

    def __init__(self):
        self._chains: List[str] = []
        self._outputs: List[str] = []

    def add(
        self,
        inputs: Sequence[str],
        filters: Union[str, Sequence[str]],
        outputs: Union[str, Sequence[str]],
    ) -> List[str]:
        """
        Append a chain.

        Args:
            inputs: Input pad labels, e.g. ``["0:v"]``
            filters: One filter expression or several to join with commas
            outputs: Output pad label(s)

        Returns:
            The output labels, for wiring into later chains
        """
        if isinstance(filters, str):
            filters = [filters]
        if isinstance(outputs, str):
            outputs = [outputs]

        for label in outputs:
            if label in self._outputs:
                raise ValueError(f"Filter graph label already used: {label}")

        chain = "".join(f"[{label}]" for label in inputs)
        chain += ",".join(filters)
        chain += "".join(f"[{label}]" for label in outputs)

        self._chains.append(chain)
        self._outputs.extend(outputs)
        return list(outputs)

    def __len__(self) -> int:
        return len(self._chains)

    def render(self) -> str:
        """Render the whole graph as one program."""
        return ";".join(self._chains)
