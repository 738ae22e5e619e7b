"""Progress bars for long sequential reads (PED lines, chunk loops)."""

import sys
from collections.abc import Iterable, Iterator

import progressbar


def _widgets(total: int, desc: str) -> list:
    label = [f"{desc}: "] if desc else []
    return label + [
        progressbar.SimpleProgress(format=f"%(value)d/{total}"),
        " ",
        progressbar.Bar(left="[", right="]"),
        " ",
        progressbar.AdaptiveETA(),
    ]


def progress_iterator(iterable: Iterable, total: int, desc: str = "") -> Iterator:
    """Yield from iterable while drawing a progressbar2 bar on stdout.

    Counts past total are clamped so a source that runs long (a PED file
    with trailing lines beyond n) never overflows the bar. The bar is
    finished when the generator is exhausted, closed early, or raises.
    """
    bar = progressbar.ProgressBar(
        max_value=total, widgets=_widgets(total, desc), fd=sys.stdout
    )
    bar.start()
    try:
        for count, item in enumerate(iterable, start=1):
            yield item
            bar.update(min(count, total))
    finally:
        bar.finish()
