"""
SSR Loader — Dependency Resolution and Execution Tests

Scripts are loaded into a sandbox dependency-first, left-to-right, and
each handle at most once per sandbox, however many scripts declare it.
"""

from pathlib import Path

import pytest

from ssr.environment import Sandbox
from ssr.loader import (
    DependencyCycle,
    ScriptLoadError,
    UnknownScript,
    load_script,
    read_source,
    resolve_order,
    resolve_script_path,
    snapshot_graph,
)
from ssr.registry import MemoryScriptRegistry
from ssr.runtime import ScriptError
from ssr.tests.fakes import RecordingRuntime
from ssr.types import ScriptDescriptor, SSROptions

# ============================================================================
# Helpers
# ============================================================================


def make_sandbox() -> tuple[Sandbox, RecordingRuntime]:
    runtime = RecordingRuntime()
    sandbox = Sandbox(runtime)
    runtime.expose("__ssr_print", sandbox.write)
    return sandbox, runtime


def executed_handles(runtime: RecordingRuntime) -> list[str]:
    return [Path(filename).stem for filename in runtime.filenames]


@pytest.fixture
def diamond(write_scripts):
    """C depends on B and A; both B and A depend on D."""
    return write_scripts(
        {
            "c": ('print("c")', ["b", "a"]),
            "b": ('print("b")', ["d"]),
            "a": ('print("a")', ["d"]),
            "d": ('print("d")', []),
        }
    )


# ============================================================================
# Order
# ============================================================================


class TestResolveOrder:
    def test_diamond_dependency_runs_once_and_first(self, diamond):
        graph = snapshot_graph(diamond, "c")
        assert resolve_order(graph, "c") == ["d", "b", "a", "c"]

    def test_already_loaded_handles_are_skipped(self, diamond):
        graph = snapshot_graph(diamond, "c")
        assert resolve_order(graph, "c", loaded={"d", "b"}) == ["a", "c"]

    def test_declared_order_is_respected(self, write_scripts):
        registry = write_scripts({"app": ("", ["z", "y", "x"]), "x": ("", []), "y": ("", []), "z": ("", [])})
        graph = snapshot_graph(registry, "app")
        assert resolve_order(graph, "app") == ["z", "y", "x", "app"]


class TestSnapshotGraph:
    def test_collects_reachable_handles_only(self, diamond):
        diamond.register(ScriptDescriptor(handle="unrelated", src="unrelated.js"))
        graph = snapshot_graph(diamond, "b")
        assert set(graph) == {"b", "d"}

    def test_unknown_dependency_names_its_parent(self, write_scripts):
        registry = write_scripts({"app": ("", ["missing"])})
        with pytest.raises(UnknownScript) as exc_info:
            snapshot_graph(registry, "app")
        assert exc_info.value.handle == "missing"
        assert "required by 'app'" in str(exc_info.value)

    def test_cycle_is_rejected(self, write_scripts):
        registry = write_scripts({"a": ("", ["b"]), "b": ("", ["c"]), "c": ("", ["a"])})
        with pytest.raises(DependencyCycle) as exc_info:
            snapshot_graph(registry, "a")
        assert "a -> b -> c -> a" in str(exc_info.value)

    def test_snapshot_is_not_affected_by_later_registry_changes(self, write_scripts):
        registry = write_scripts({"app": ("", ["lib"]), "lib": ("", [])})
        graph = snapshot_graph(registry, "app")
        registry.add_dependency("app", "late")
        assert graph["app"].deps == ("lib",)


# ============================================================================
# Execution
# ============================================================================


class TestLoadScript:
    def test_diamond_executes_each_script_once_in_order(self, diamond, options):
        sandbox, runtime = make_sandbox()
        graph = snapshot_graph(diamond, "c")

        load_script(sandbox, graph, "c", options)

        assert executed_handles(runtime) == ["d", "b", "a", "c"]
        assert sandbox.loaded == ["d", "b", "a", "c"]

    def test_returns_only_own_output(self, diamond, options):
        sandbox, _ = make_sandbox()
        graph = snapshot_graph(diamond, "c")
        assert load_script(sandbox, graph, "c", options) == "c"

    def test_second_load_in_same_sandbox_skips_loaded_dependencies(self, diamond, options):
        sandbox, runtime = make_sandbox()
        load_script(sandbox, snapshot_graph(diamond, "b"), "b", options)
        load_script(sandbox, snapshot_graph(diamond, "a"), "a", options)
        assert executed_handles(runtime) == ["d", "b", "a"]

    def test_output_is_concatenated(self, write_scripts, options):
        registry = write_scripts({"app": ('print("<p>")\nprint("hello")\nprint("</p>")', [])})
        sandbox, _ = make_sandbox()
        assert load_script(sandbox, snapshot_graph(registry, "app"), "app", options) == "<p>hello</p>"

    def test_execution_error_propagates(self, write_scripts, options):
        registry = write_scripts({"app": ('print("partial")\nthrow boom', ["lib"]), "lib": ("", [])})
        sandbox, _ = make_sandbox()
        with pytest.raises(ScriptError) as exc_info:
            load_script(sandbox, snapshot_graph(registry, "app"), "app", options)
        assert exc_info.value.line_number == 2
        assert exc_info.value.filename.endswith("app.js")
        # Marked before execution, so a retry in this sandbox will not re-run it
        assert sandbox.loaded == ["lib", "app"]

    def test_missing_file_raises_load_error(self, options):
        registry = MemoryScriptRegistry([ScriptDescriptor(handle="app", src="/nowhere/app.js")])
        sandbox, _ = make_sandbox()
        with pytest.raises(ScriptLoadError):
            load_script(sandbox, snapshot_graph(registry, "app"), "app", options)


# ============================================================================
# Sources
# ============================================================================


class TestResolveScriptPath:
    def test_static_url_maps_to_static_dir(self, tmp_path):
        opts = SSROptions(content_url="https://example.com/static", content_dir=tmp_path / "static")
        path = resolve_script_path("https://example.com/static/blocks/app.js?ver=3", opts)
        assert path == tmp_path / "static" / "blocks" / "app.js"

    def test_host_absolute_path_maps_under_site_root(self, tmp_path):
        opts = SSROptions(site_root=tmp_path)
        assert resolve_script_path("/vendor/react.js", opts) == tmp_path / "vendor" / "react.js"

    def test_other_sources_are_already_paths(self, tmp_path):
        opts = SSROptions(site_root=tmp_path)
        assert resolve_script_path("relative/app.js", opts) == Path("relative/app.js")


class TestReadSource:
    def test_lodash_is_patched_to_populate_window(self, tmp_path):
        (tmp_path / "lodash.js").write_text("var _ = {};", encoding="utf-8")
        descriptor = ScriptDescriptor(handle="lodash", src="/lodash.js")
        _, source = read_source(descriptor, SSROptions(site_root=tmp_path))
        assert source.startswith("var _ = {};")
        assert source.endswith("window.lodash = global._;")

    def test_server_override_replaces_registry_path(self, tmp_path):
        server_build = tmp_path / "react-dom-server.js"
        server_build.write_text("/* server */", encoding="utf-8")
        descriptor = ScriptDescriptor(handle="react-dom", src="/wp-includes/react-dom.js")
        opts = SSROptions(site_root=tmp_path, server_overrides={"react-dom": server_build})

        path, source = read_source(descriptor, opts)

        assert path == server_build
        assert source == "/* server */"

    def test_runtime_library_is_read_from_bundled_assets(self):
        descriptor = ScriptDescriptor(handle="ssr-runtime", src="/ssr-assets/ssr-runtime.js")
        path, source = read_source(descriptor, SSROptions())
        assert path.name == "ssr-runtime.js"
        assert "BlockSSR" in source
