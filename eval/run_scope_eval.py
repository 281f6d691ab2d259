"""Offline scope-gate evaluation over a golden message set."""

import json
from collections import Counter
from pathlib import Path

GOLDEN_PATH = Path(__file__).resolve().parent / "golden_scope.jsonl"


def _load_rows(path: Path) -> list[dict]:
    rows: list[dict] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                rows.append(json.loads(line))
    return rows


def _mismatches(rows: list[dict], predictions: list[str]) -> list[tuple[str, str, str]]:
    return [
        (str(row.get("message", "")), str(row.get("expected", "")), predicted)
        for row, predicted in zip(rows, predictions)
        if predicted != row.get("expected")
    ]


def _accuracy(rows: list[dict], predictions: list[str]) -> float:
    if not rows:
        return 0.0
    return 1.0 - len(_mismatches(rows, predictions)) / len(rows)


def _confusion(rows: list[dict], predictions: list[str]) -> Counter:
    return Counter(
        (str(row.get("expected", "")), predicted) for row, predicted in zip(rows, predictions)
    )


def main():
    from vtwoods.rag.scope import classify, topic_matches
    from vtwoods.rag.vocabulary import vocabulary

    rows = _load_rows(GOLDEN_PATH)
    predictions = [classify(str(row.get("message", ""))).value for row in rows]

    for message, expected, predicted in _mismatches(rows, predictions):
        hits = ", ".join(topic_matches(message)) or "-"
        print(f"\nQ: {message}\nExpected: {expected}  Got: {predicted}  Topic hits: {hits}")

    for (expected, predicted), count in sorted(_confusion(rows, predictions).items()):
        print(f"{expected:>13} -> {predicted:<13} {count}")

    print(
        f"\nOK: Accuracy {_accuracy(rows, predictions):.2f} over {len(rows)} messages "
        f"(vocabulary {vocabulary().version})"
    )


if __name__ == "__main__":
    main()
