"""Tests for class dump loading and normalization."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from libmatch.loader import (
    LoadedClass,
    LoaderError,
    Member,
    fuzzy_signature,
    infer_kind,
    load_classes,
    normalize_signature,
    parse_classes,
    to_descriptor,
    to_descriptors,
)

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import DumpWriter


class TestParseClasses:
    def test_object_form(self) -> None:
        classes = parse_classes(
            {
                "classes": [
                    {
                        "name": "com.example.Foo",
                        "public": False,
                        "methods": [{"signature": "run()V", "public": True}],
                        "fields": ["count:I"],
                    }
                ]
            }
        )
        assert len(classes) == 1
        cls = classes[0]
        assert cls.name == "com.example.Foo"
        assert cls.package_path == ("com", "example")
        assert cls.simple_name == "Foo"
        assert cls.public is False
        assert [m.signature for m in cls.members] == ["run()V", "count:I"]
        assert [m.signature for m in cls.methods] == ["run()V"]

    def test_list_form_and_slashes(self) -> None:
        classes = parse_classes([{"name": "com/example/Foo"}])
        assert classes[0].name == "com.example.Foo"

    def test_explicit_kind(self) -> None:
        classes = parse_classes([{"name": "com.example.Mode", "kind": "enum"}])
        assert classes[0].kind == "enum"

    @pytest.mark.parametrize(
        "data",
        [
            {"nope": []},
            "classes",
            [{"methods": []}],
            [{"name": ""}],
            [{"name": "a.B", "kind": "struct"}],
            [{"name": "a.B", "methods": [{"public": True}]}],
            [{"name": "a.B", "methods": None}],
            [{"name": "a.B", "fields": "count:I"}],
            [{"name": "a.B", "methods": {"signature": "run()V"}}],
        ],
    )
    def test_malformed(self, data: object) -> None:
        with pytest.raises(LoaderError):
            parse_classes(data)


class TestInferKind:
    def test_kinds(self) -> None:
        assert infer_kind("com.a.Foo") == "top_level"
        assert infer_kind("com.a.Foo$Bar") == "inner"
        assert infer_kind("com.a.Foo$1") == "anonymous"
        assert infer_kind("com.a$b.Foo") == "top_level"

    def test_inferred_when_missing(self) -> None:
        assert parse_classes([{"name": "a.Foo$2"}])[0].kind == "anonymous"


class TestLoadClasses:
    def test_reads_file(self, write_class_dump: DumpWriter) -> None:
        path = write_class_dump("lib.json", [{"name": "a.b.C", "methods": ["m()V"]}])
        assert load_classes(path)[0].simple_name == "C"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LoaderError, match="cannot read"):
            load_classes(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(LoaderError, match="not valid JSON"):
            load_classes(path)

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_bytes(b"\xff\xfe{\"classes\": []}")
        with pytest.raises(LoaderError, match="not UTF-8"):
            load_classes(path)


class TestNormalization:
    def test_fuzzy_keeps_framework_types(self) -> None:
        sig = "run(Lcom/example/Foo;ILjava/lang/String;)Landroid/view/View;"
        assert fuzzy_signature(sig) == "run(XILjava/lang/String;)Landroid/view/View;"

    def test_fuzzy_arrays(self) -> None:
        assert fuzzy_signature("set([Lcom/x/Y;)V") == "set([X)V"

    def test_strip_owner_prefix(self) -> None:
        assert normalize_signature("com.example.Foo.run()V", "com.example.Foo") == "run()V"
        assert normalize_signature("com/example/Foo.run()V", "com.example.Foo") == "run()V"
        assert normalize_signature("run()V", "com.example.Foo") == "run()V"

    def test_member_filtering(self) -> None:
        cls = LoadedClass(
            name="com.example.Foo",
            members=(
                Member("run()V"),
                Member("hidden()V", public=False),
                Member("access$000()V", synthetic=True),
                Member("compareTo(Ljava/lang/Object;)I", bridge=True),
            ),
        )
        assert to_descriptor(cls).member_signatures == frozenset({"run()V"})
        assert to_descriptor(cls, public_only=False).member_signatures == frozenset({"run()V", "hidden()V"})

    def test_renamed_class_same_hash_with_fuzzy(self) -> None:
        a = LoadedClass(name="com.example.Foo", members=(Member("use(Lcom/example/Bar;)V"),))
        b = LoadedClass(name="a.b.c", members=(Member("use(La/b/d;)V"),))
        assert to_descriptor(a).content_hash != to_descriptor(b).content_hash
        assert to_descriptor(a, fuzzy=True).content_hash == to_descriptor(b, fuzzy=True).content_hash

    def test_to_descriptors(self) -> None:
        descriptors = to_descriptors(parse_classes([{"name": "a.B$1", "methods": ["m()V"]}]))
        assert descriptors[0].kind == "anonymous"
        assert descriptors[0].package_path == ("a",)
        assert descriptors[0].simple_name == "B$1"
