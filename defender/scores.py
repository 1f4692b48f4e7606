"""
排行榜持久化

HighScoreTable 是引擎之外的协作者，引擎只在 GameOver 时访问它。
排行榜最多保存 5 条记录，按分数降序排列，持久化为 JSON 文件。

读写失败不会影响模拟：加载失败时从空表开始，保存失败时只记录日志，
本局继续（只是没有保存成绩）。
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional, Union
import json
import logging
import time

logger = logging.getLogger(__name__)


@dataclass
class HighScoreEntry:
    """
    单条排行榜记录

    属性:
        initials (str): 3 个大写字母
        score (int): 分数
        wave (int): 结束时的波次
        timestamp (float): 记录时间（Unix 时间戳，秒）
    """
    initials: str
    score: int
    wave: int
    timestamp: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'HighScoreEntry':
        return cls(
            initials=normalize_initials(str(data['initials'])),
            score=int(data['score']),
            wave=int(data.get('wave', 1)),
            timestamp=float(data.get('timestamp', 0.0)),
        )


def normalize_initials(initials: str) -> str:
    """转大写，不足 3 位补空格，超过 3 位截断"""
    return initials.upper().ljust(3)[:3]


class HighScoreTable:
    """
    排行榜

    属性:
        path (Optional[Path]): JSON 文件路径，None 表示只在内存中保存
        max_entries (int): 最大条目数（默认 5）
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, max_entries: int = 5):
        """
        初始化并加载排行榜

        Args:
            path: JSON 文件路径
            max_entries: 最大条目数
        """
        self.path = Path(path) if path is not None else None
        self.max_entries = max_entries
        self._entries: List[HighScoreEntry] = []
        self.load()

    @property
    def entries(self) -> List[HighScoreEntry]:
        """按分数降序排列的记录（副本）"""
        return list(self._entries)

    def load(self):
        """从文件加载；任何读取或解析错误都回退为空表"""
        self._entries = []
        if self.path is None or not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            entries = [HighScoreEntry.from_dict(item) for item in data]
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.warning(f"Could not load high scores from {self.path}: {e}")
            return

        self._entries = self._ranked(entries)

    def save(self) -> bool:
        """
        保存到文件

        Returns:
            True 如果写入成功；失败只记录日志
        """
        if self.path is None:
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump([e.to_dict() for e in self._entries], f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save high scores to {self.path}: {e}")
            return False
        return True

    def is_qualifying(self, score: int) -> bool:
        """
        分数能否上榜

        表未满时总能上榜，否则必须严格高于当前最低分。
        """
        if len(self._entries) < self.max_entries:
            return True
        return score > min(e.score for e in self._entries)

    def record(self, initials: str, score: int, wave: int) -> HighScoreEntry:
        """
        记录一条成绩，重新排序、截断并持久化

        Args:
            initials: 玩家缩写
            score: 分数
            wave: 波次

        Returns:
            新增的记录
        """
        entry = HighScoreEntry(
            initials=normalize_initials(initials),
            score=score,
            wave=wave,
            timestamp=time.time(),
        )
        self._entries = self._ranked(self._entries + [entry])
        self.save()
        logger.info(f"Recorded high score {entry.initials} {score} (wave {wave})")
        return entry

    def rank(self, score: int) -> int:
        """
        分数在榜上的名次（从 1 开始）

        同分时排在已有记录之后；最多返回 max_entries + 1。
        """
        rank = 1
        for entry in self._entries:
            if score > entry.score:
                break
            rank += 1
        return min(rank, self.max_entries + 1)

    def top_score(self) -> int:
        """最高分，空表为 0"""
        return self._entries[0].score if self._entries else 0

    def _ranked(self, entries: List[HighScoreEntry]) -> List[HighScoreEntry]:
        ordered = sorted(entries, key=lambda e: e.score, reverse=True)
        return ordered[:self.max_entries]
