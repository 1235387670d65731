from pathlib import Path

from github_agent.llm.generator import build_user_prompt
from github_agent.runtime.context import FileSnapshot, collect_snapshots


def _make_repo(root: Path) -> None:
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("x", encoding="utf-8")
    (root / ".env").write_text("SECRET=1\n", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "b.py").write_text("b = 2\n", encoding="utf-8")
    (root / "src" / "a.py").write_text("a = 1\n", encoding="utf-8")
    (root / "README.md").write_text("# Demo\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    (root / "latin1.txt").write_bytes("caf\xe9".encode("latin-1"))


def test_collects_text_files_in_sorted_order(tmp_path: Path):
    _make_repo(tmp_path)

    snaps = collect_snapshots(tmp_path)

    assert [s.path for s in snaps] == ["README.md", "src/a.py", "src/b.py"]
    assert snaps[0] == FileSnapshot(path="README.md", content="# Demo\n")


def test_collection_is_deterministic(tmp_path: Path):
    _make_repo(tmp_path)
    assert collect_snapshots(tmp_path) == collect_snapshots(tmp_path)


def test_custom_ignore_and_size_limit(tmp_path: Path):
    _make_repo(tmp_path)
    (tmp_path / "big.txt").write_text("x" * 100, encoding="utf-8")

    snaps = collect_snapshots(tmp_path, ignore_names=[".git", "node_modules", ".env", "src"], max_file_bytes=50)

    assert [s.path for s in snaps] == ["README.md"]


def test_symlinks_are_skipped(tmp_path: Path):
    outside = tmp_path / "outside.txt"
    outside.write_text("secret", encoding="utf-8")
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "link.txt").symlink_to(outside)

    assert collect_snapshots(repo) == ()


def test_user_prompt_wraps_files():
    prompt = build_user_prompt(
        "demo",
        [FileSnapshot("a.txt", "hello"), FileSnapshot("b/c.txt", "world")],
        "Say hi",
    )

    assert prompt.startswith("Repository: demo\n\nExisting files:\n")
    assert '<existing_file path="a.txt">\nhello\n</existing_file>\n<existing_file path="b/c.txt">' in prompt
    assert prompt.endswith("\n\nTask: Say hi")


def test_user_prompt_for_empty_repository():
    prompt = build_user_prompt("demo", [], "Create a README")
    assert "Existing files:\n(empty repository)\n\nTask: Create a README" in prompt
