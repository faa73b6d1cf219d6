"""Pure helpers over tuples of TextRun: length, split, slice, normalize"""

from knowitall.core.models import TextRun


def text_length(runs: tuple[TextRun, ...]) -> int:
    return sum(len(r.text) for r in runs)


def plain_text(runs: tuple[TextRun, ...]) -> str:
    return "".join(r.text for r in runs)


def split_runs(runs: tuple[TextRun, ...], at: int) -> tuple[tuple[TextRun, ...], tuple[TextRun, ...]]:
    """Split runs at character offset `at`, cutting a run in two if needed."""
    left: list[TextRun] = []
    right: list[TextRun] = []
    pos = 0
    for run in runs:
        end = pos + len(run.text)
        if end <= at:
            left.append(run)
        elif pos >= at:
            right.append(run)
        else:
            cut = at - pos
            left.append(run.model_copy(update={"text": run.text[:cut]}))
            right.append(run.model_copy(update={"text": run.text[cut:]}))
        pos = end
    return tuple(left), tuple(right)


def slice_runs(runs: tuple[TextRun, ...], start: int, end: int) -> tuple[tuple, tuple, tuple]:
    """Return (before, middle, after) around the [start, end) span."""
    head, tail = split_runs(runs, end)
    before, middle = split_runs(head, start)
    return before, middle, tail


def normalize_runs(runs) -> tuple[TextRun, ...]:
    """Merge adjacent runs with equal marks."""
    merged: list[TextRun] = []
    for run in runs:
        if merged and merged[-1].marks == run.marks:
            merged[-1] = merged[-1].model_copy(update={"text": merged[-1].text + run.text})
        else:
            merged.append(run)
    return tuple(merged)
