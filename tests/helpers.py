"""Test helpers: project fixtures, scripted prompts and a recording renderer."""

import pathlib


def make_project(path: pathlib.Path, target_bytes: int = 0) -> pathlib.Path:
    """Create a Cargo project with a target/ directory of the given size"""
    path.mkdir(parents=True, exist_ok=True)
    (path / "Cargo.toml").write_text('[package]\nname = "demo"\n')
    target = path / "target"
    target.mkdir(exist_ok=True)
    if target_bytes:
        with (target / "artifact.bin").open("wb") as f:
            f.truncate(target_bytes)
    return path


class ScriptedAnswers:
    """Prompt replacement returning prepared answers in order"""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {question}")
        return self.answers.pop(0)


class RecordingRenderer:
    """Progress renderer that remembers every call"""

    def __init__(self):
        self.calls: list[tuple] = []

    def start(self):
        self.calls.append(("start",))

    def visiting(self, path, depth):
        self.calls.append(("visiting", path, depth))

    def found(self, project):
        self.calls.append(("found", project))

    def scanned(self, count):
        self.calls.append(("scanned", count))

    def done(self, total):
        self.calls.append(("done", total))

    def of(self, kind: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == kind]
