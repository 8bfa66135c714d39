import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class FixedClock:
    """Clock returning a settable local datetime as nanoseconds."""

    def __init__(self, when: datetime):
        self.when = when

    def __call__(self) -> int:
        from dcm.domain.timestamps import from_datetime

        return from_datetime(self.when)


def make_repo(tmp_path: Path, name: str = "dairy.db", page_size: int = 50, clock=None):
    from dcm.repositories.sqlite_repo import SqliteRepository

    kwargs = {"page_size": page_size}
    if clock is not None:
        kwargs["clock"] = clock
    repo = SqliteRepository(tmp_path / name, **kwargs)
    repo.init_db()
    return repo
