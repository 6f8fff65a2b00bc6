from pathlib import Path

import pytest

from codecollector.modules.core.project_index import FileLocation, SourceRoot
from codecollector.modules.core.resolver import ResolverConfig, SymbolResolver


MAIN = SourceRoot(Path("/p/src/main/java"), "main")
TEST = SourceRoot(Path("/p/src/test/java"), "test")
GEN = SourceRoot(Path("/p/build/generated"), "generated", build_output=True)
OUT = SourceRoot(Path("/p/build/classes"), "main", build_output=True)


def _loc(root: SourceRoot, module: str = "app", root_count: int = 1) -> FileLocation:
    return FileLocation(
        module=module,
        root=root,
        generated=root.kind == "generated",
        build_output=root.build_output,
        module_root_count=root_count,
    )


class FakeLookup:
    def __init__(self, declarations=None, locations=None, modules=None, fail=False):
        self.declarations = declarations or {}
        self.locations = locations or {}
        self.modules = modules or {}
        self.fail = fail
        self.calls: list[tuple[str, bool]] = []

    def find_declarations(self, qualified_name, requesting_file, *, project_wide=False):
        self.calls.append((qualified_name, project_wide))
        if self.fail:
            raise RuntimeError("index unavailable")
        entry = self.declarations.get(qualified_name, {})
        return list(entry.get("project" if project_wide else "module", []))

    def location(self, path):
        return self.locations.get(Path(path))

    def module_name(self, path):
        return self.modules.get(Path(path))


REQ = Path("/p/src/main/java/app/Main.java")


def test_resolve_is_memoized_and_deterministic() -> None:
    target = Path("/p/src/main/java/app/Service.java")
    lookup = FakeLookup(
        declarations={"app.Service": {"module": [target]}},
        locations={REQ: _loc(MAIN), target: _loc(MAIN)},
    )
    resolver = SymbolResolver(lookup)

    assert resolver.resolve("app.Service", REQ) == target
    assert resolver.resolve("app.Service", REQ) == target
    assert lookup.calls == [("app.Service", False)]


def test_clear_cache_sees_changed_project() -> None:
    old = Path("/p/src/main/java/app/Old.java")
    new = Path("/p/src/main/java/app/New.java")
    lookup = FakeLookup(
        declarations={"app.Thing": {"module": [old]}},
        locations={REQ: _loc(MAIN), old: _loc(MAIN), new: _loc(MAIN)},
    )
    resolver = SymbolResolver(lookup)
    assert resolver.resolve("app.Thing", REQ) == old

    lookup.declarations["app.Thing"] = {"module": [new]}
    assert resolver.resolve("app.Thing", REQ) == old

    resolver.clear_cache()
    assert resolver.resolve("app.Thing", REQ) == new


def test_unknown_name_resolves_to_none_and_is_cached() -> None:
    lookup = FakeLookup(locations={REQ: _loc(MAIN)})
    resolver = SymbolResolver(lookup)

    assert resolver.resolve("app.Missing", REQ) is None
    assert resolver.resolve("app.Missing", REQ) is None
    assert lookup.calls == [("app.Missing", False), ("app.Missing", True)]


def test_lookup_failure_degrades_to_none() -> None:
    lookup = FakeLookup(fail=True)
    resolver = SymbolResolver(lookup)

    assert resolver.resolve("app.Service", REQ) is None
    assert resolver.resolve("app.Service", REQ) is None
    assert len(lookup.calls) == 1


def test_falls_back_to_project_scope() -> None:
    other = Path("/p/other/src/main/java/app/Util.java")
    lookup = FakeLookup(
        declarations={"app.Util": {"module": [], "project": [other]}},
        locations={REQ: _loc(MAIN), other: _loc(MAIN, module="other")},
    )

    assert SymbolResolver(lookup).resolve("app.Util", REQ) == other


def test_file_outside_source_roots_is_rejected() -> None:
    stray = Path("/p/scripts/Tool.java")
    lookup = FakeLookup(
        declarations={"Tool": {"module": [stray], "project": [stray]}},
        locations={REQ: _loc(MAIN)},
    )

    assert SymbolResolver(lookup).resolve("Tool", REQ) is None


def test_generated_sources_are_opt_in() -> None:
    gen = Path("/p/build/generated/app/Dto.java")
    decls = {"app.Dto": {"module": [gen], "project": [gen]}}
    locations = {REQ: _loc(MAIN), gen: _loc(GEN, root_count=2)}

    assert SymbolResolver(FakeLookup(decls, locations)).resolve("app.Dto", REQ) is None

    config = ResolverConfig(include_generated=True)
    assert SymbolResolver(FakeLookup(decls, locations), config).resolve("app.Dto", REQ) == gen


def test_generated_sources_allowed_from_tests() -> None:
    gen = Path("/p/build/generated/app/Dto.java")
    test_file = Path("/p/src/test/java/app/DtoTest.java")
    lookup = FakeLookup(
        declarations={"app.Dto": {"module": [gen], "project": [gen]}},
        locations={REQ: _loc(MAIN), test_file: _loc(TEST), gen: _loc(GEN, root_count=3)},
    )
    resolver = SymbolResolver(lookup, ResolverConfig(generated_from_tests=True))

    assert resolver.resolve("app.Dto", test_file) == gen


def test_test_sources_can_be_excluded() -> None:
    helper = Path("/p/src/test/java/app/Fixtures.java")
    decls = {"app.Fixtures": {"module": [helper], "project": [helper]}}
    locations = {REQ: _loc(MAIN), helper: _loc(TEST)}

    assert SymbolResolver(FakeLookup(decls, locations)).resolve("app.Fixtures", REQ) == helper

    config = ResolverConfig(include_test_sources=False)
    assert SymbolResolver(FakeLookup(decls, locations), config).resolve("app.Fixtures", REQ) is None


def test_build_output_copy_loses_to_source() -> None:
    copy = Path("/p/build/classes/app/Service.java")
    source = Path("/p/src/main/java/app/Service.java")
    lookup = FakeLookup(
        declarations={"app.Service": {"module": [copy, source]}},
        locations={REQ: _loc(MAIN), copy: _loc(OUT, root_count=2), source: _loc(MAIN, root_count=2)},
    )

    assert SymbolResolver(lookup).resolve("app.Service", REQ) == source


def test_build_output_rejected_in_multi_root_module() -> None:
    copy = Path("/p/build/classes/app/Service.java")
    decls = {"app.Service": {"module": [copy], "project": [copy]}}

    multi = FakeLookup(decls, {REQ: _loc(MAIN), copy: _loc(OUT, root_count=2)})
    assert SymbolResolver(multi).resolve("app.Service", REQ) is None

    single = FakeLookup(decls, {REQ: _loc(MAIN), copy: _loc(OUT, root_count=1)})
    assert SymbolResolver(single).resolve("app.Service", REQ) == copy


def test_module_cache_key_separates_modules() -> None:
    req_a = Path("/p/a/src/main/java/x/Main.java")
    req_b = Path("/p/b/src/main/java/x/Main.java")
    util_a = Path("/p/a/src/main/java/x/Util.java")
    lookup = FakeLookup(
        declarations={"x.Util": {"module": [util_a]}},
        locations={req_a: _loc(MAIN, "a"), req_b: _loc(MAIN, "b"), util_a: _loc(MAIN, "a")},
        modules={req_a: "a", req_b: "b"},
    )
    resolver = SymbolResolver(lookup, ResolverConfig(cache_key="module"))

    resolver.resolve("x.Util", req_a)
    resolver.resolve("x.Util", req_b)

    assert [name for name, project_wide in lookup.calls if not project_wide] == ["x.Util", "x.Util"]


def test_name_cache_key_shares_answer_across_modules() -> None:
    req_a = Path("/p/a/src/main/java/x/Main.java")
    req_b = Path("/p/b/src/main/java/x/Main.java")
    util_a = Path("/p/a/src/main/java/x/Util.java")
    lookup = FakeLookup(
        declarations={"x.Util": {"module": [util_a]}},
        locations={req_a: _loc(MAIN, "a"), req_b: _loc(MAIN, "b"), util_a: _loc(MAIN, "a")},
    )
    resolver = SymbolResolver(lookup)

    assert resolver.resolve("x.Util", req_a) == util_a
    assert resolver.resolve("x.Util", req_b) == util_a
    assert len(lookup.calls) == 1


def test_invalid_cache_key_rejected() -> None:
    with pytest.raises(ValueError):
        ResolverConfig(cache_key="path")
