from pathlib import Path

from advscript.data import paths


def test_get_definitions_path_base_path(tmp_path: Path) -> None:
    assert paths.get_definitions_path(tmp_path) == tmp_path


def test_get_definitions_path_source_repo_exists() -> None:
    definitions_path = paths.get_definitions_path()
    assert definitions_path.name == "definitions"
    assert (definitions_path / "node_types.json").exists()


def test_demo_world_is_bundled() -> None:
    demo = paths.get_demo_world_path()
    assert demo.name == "demo_world.json"
    assert demo.exists()
