from __future__ import annotations

from pathlib import Path

from crown.content.compile import CompiledDocument, compile_document
from crown.content.ordering import sort_by_order


def _doc(path: str, order: object = None, **extra: object) -> CompiledDocument:
    metadata: dict[str, object] = dict(extra)
    if order is not None:
        metadata["order"] = order
    return CompiledDocument(path=path, absolute_path=Path("/book") / path, metadata=metadata)


def test_ordered_items_come_first_then_unordered_by_path() -> None:
    documents = [_doc("b", 2), _doc("a"), _doc("c", 1)]
    assert [doc.path for doc in sort_by_order(documents)] == ["c", "b", "a"]


def test_unordered_items_sort_lexicographically() -> None:
    documents = [_doc("z.md"), _doc("m.md"), _doc("a.md", 10)]
    assert [doc.path for doc in sort_by_order(documents)] == ["a.md", "m.md", "z.md"]


def test_equal_order_values_keep_discovery_order() -> None:
    documents = [_doc("second", 1, tag="x"), _doc("first", 1, tag="y"), _doc("zero", 0)]
    ordered = sort_by_order(documents)
    assert [doc.path for doc in ordered] == ["zero", "second", "first"]


def test_non_numeric_order_counts_as_unordered() -> None:
    documents = [_doc("b", "1"), _doc("a", True), _doc("c", 1.5)]
    assert [doc.path for doc in sort_by_order(documents)] == ["c", "a", "b"]


def test_sort_does_not_mutate_input() -> None:
    documents = [_doc("b"), _doc("a")]
    sort_by_order(documents)
    assert [doc.path for doc in documents] == ["b", "a"]


def test_non_finite_order_values_count_as_unordered() -> None:
    documents = [_doc("nan.md", float("nan")), _doc("one.md", 1), _doc("inf.md", float("inf")), _doc("a.md")]
    ordered = sort_by_order(documents)
    assert [doc.path for doc in ordered] == ["one.md", "a.md", "inf.md", "nan.md"]
    assert ordered[2].order is None


def test_yaml_nan_order_from_front_matter(tmp_path: Path) -> None:
    source = tmp_path / "chapter.md"
    source.write_text("---\norder: .nan\n---\nBody\n", encoding="utf-8")
    assert compile_document(source, tmp_path).order is None
