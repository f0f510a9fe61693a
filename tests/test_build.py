from pathlib import Path

import pytest

from dispa_timeline.build import compile_tree, find_sources, write_outputs
from dispa_timeline.config import CompilerConfig
from dispa_timeline.parser import CompileErrorGroup
from dispa_timeline.stream_io import InputFormatError

SAMPLES = Path(__file__).resolve().parents[1] / "samples"


def make_tree(tmp_path: Path) -> CompilerConfig:
    src = tmp_path / "src"
    (src / "props").mkdir(parents=True)
    (src / "dtest.dspa").write_text((SAMPLES / "dtest.dspa").read_text(encoding="utf-8"), encoding="utf-8")
    (src / "props" / "test_obj.dspa").write_text(
        (SAMPLES / "test_obj.dspa").read_text(encoding="utf-8"), encoding="utf-8"
    )
    (src / "notes.txt").write_text("not a source", encoding="utf-8")
    return CompilerConfig(
        source_folder=str(src),
        target_folder=str(tmp_path / "objects"),
        tick_function=str(tmp_path / "tick.mcfunction"),
        namespace="de",
    )


def test_find_sources_only_picks_dspa_files(tmp_path: Path):
    config = make_tree(tmp_path)
    found = find_sources(Path(config.source_folder))
    assert [p.name for p in found] == ["dtest.dspa", "test_obj.dspa"]


def test_missing_source_folder(tmp_path: Path):
    with pytest.raises(InputFormatError):
        find_sources(tmp_path / "absent")


def test_compile_and_write_mirror_the_source_tree(tmp_path: Path):
    config = make_tree(tmp_path)

    outputs = compile_tree(config)
    write_outputs(outputs, config)

    target = tmp_path / "objects"
    assert (target / "dtest.mcfunction").read_text(encoding="utf-8").startswith("# File generated using DiSPA")
    assert (target / "props" / "test_obj.mcfunction").exists()

    tick = (tmp_path / "tick.mcfunction").read_text(encoding="utf-8").splitlines()
    objects = (tmp_path / "objects").as_posix()
    assert tick == [
        f"execute if score $dtest-atest flags matches 1.. run function de:{objects}/dtest",
        f"execute if score $test_obj-test_anim flags matches 1.. run function de:{objects}/props/test_obj",
    ]


def test_tick_function_is_rewritten_not_appended(tmp_path: Path):
    config = make_tree(tmp_path)
    for _ in range(2):
        write_outputs(compile_tree(config), config)
    assert len((tmp_path / "tick.mcfunction").read_text(encoding="utf-8").splitlines()) == 2


def test_errors_from_all_files_are_collected(tmp_path: Path):
    config = make_tree(tmp_path)
    src = Path(config.source_folder)
    (src / "a.dspa").write_text("object a:x\nwobble e\n", encoding="utf-8")
    (src / "b.dspa").write_text("object b:x\nwait soon\n", encoding="utf-8")

    with pytest.raises(CompileErrorGroup) as info:
        compile_tree(config)

    assert [(Path(e.path).name, e.line) for e in info.value.errors] == [("a.dspa", 2), ("b.dspa", 2)]
    assert not (tmp_path / "objects").exists()


def test_a_failing_file_leaves_the_target_untouched(tmp_path: Path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a_ok.dspa").write_text("object a:ok\nm e 1 0 0 5\n", encoding="utf-8")
    (src / "b_bad.dspa").write_text("object b:bad\ntp e 1e39 0 0\n", encoding="utf-8")
    config = CompilerConfig(
        source_folder=str(src),
        target_folder=str(tmp_path / "objects"),
        tick_function=str(tmp_path / "tick.mcfunction"),
        namespace="de",
    )

    with pytest.raises(CompileErrorGroup) as info:
        compile_tree(config)

    assert [(Path(e.path).name, e.line) for e in info.value.errors] == [("b_bad.dspa", 2)]
    assert not (tmp_path / "objects").exists()
    assert not (tmp_path / "tick.mcfunction").exists()


def test_outputs_carry_their_rendered_script(tmp_path: Path):
    config = make_tree(tmp_path)
    outputs = compile_tree(config)
    assert all(out.script.startswith("# File generated using DiSPA") for out in outputs)
    assert not (tmp_path / "objects").exists()
