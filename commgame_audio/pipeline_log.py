from io import StringIO
from pathlib import Path


class PipelineLogger:
    """Tee every message to both stdout and an in-memory buffer."""

    def __init__(self, echo: bool = True):
        self._buf = StringIO()
        self.echo = echo
        self.warnings: list[str] = []

    def log(self, msg=""):
        if self.echo:
            print(msg)
        self._buf.write(msg + "\n")

    def warn(self, msg: str):
        self.warnings.append(msg)
        self.log(f"WARNING! {msg}")

    def getvalue(self) -> str:
        return self._buf.getvalue()

    def flush_to(self, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self._buf.getvalue())
        print(f"\n[LOG SAVED] {path}")
