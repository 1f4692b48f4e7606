"""
Replay recording and playback system

只记录种子、配置和每次调用引擎的操作（start / pause / update 及其意图和 dt），
回放时用一个全新的引擎按原顺序重新执行，比较最终状态哈希即可确认确定性。
"""

import logging
import time
import zlib
from dataclasses import dataclass, field, asdict
from typing import List, Optional

import msgpack

from .config import Config
from .engine import GameEngine
from .input import Intents
from .state import StateSnapshot

logger = logging.getLogger(__name__)

MAGIC = b'BDRP'

OP_START = 's'
OP_PAUSE = 'p'
OP_UPDATE = 'u'


@dataclass
class ReplayFrame:
    """一次引擎调用"""
    op: str
    flags: int = 0
    dt_ms: Optional[int] = None

    def to_list(self) -> list:
        return [self.op, self.flags, self.dt_ms]

    @classmethod
    def from_list(cls, data: list) -> 'ReplayFrame':
        op, flags, dt_ms = data
        if op not in (OP_START, OP_PAUSE, OP_UPDATE):
            raise ValueError(f"Unknown replay op: {op!r}")
        return cls(op=op, flags=flags, dt_ms=dt_ms)


@dataclass
class ReplayHeader:
    """回放文件头"""
    version: str = "1.0"
    seed: int = 1
    created_at: float = 0.0
    frame_count: int = 0
    final_hash: str = ""
    final_score: int = 0
    final_wave: int = 1
    config: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'ReplayHeader':
        return cls(**data)


class ReplayRecorder:
    """
    回放录制器

    调用方在每次调用引擎时同步记录同一操作：
        recorder = ReplayRecorder(seed=42, config=engine.config)
        engine.start(); recorder.record_start()
        engine.update(intents); recorder.record_update(intents)
    """

    def __init__(self, seed: int = 1, config: Optional[Config] = None):
        """
        初始化录制器

        Args:
            seed: 引擎使用的随机种子
            config: 引擎使用的配置
        """
        self.header = ReplayHeader(
            seed=seed,
            created_at=time.time(),
            config=(config or Config()).to_dict(),
        )
        self.frames: List[ReplayFrame] = []

    def record_start(self):
        self.frames.append(ReplayFrame(op=OP_START))

    def record_pause(self):
        self.frames.append(ReplayFrame(op=OP_PAUSE))

    def record_update(self, intents: Optional[Intents] = None, dt_ms: Optional[int] = None):
        flags = int(intents.flags) if intents is not None else 0
        self.frames.append(ReplayFrame(op=OP_UPDATE, flags=flags, dt_ms=dt_ms))

    def finish(self, snapshot: StateSnapshot):
        """记录录制结束时的状态，用于回放校验"""
        self.header.frame_count = len(self.frames)
        self.header.final_hash = snapshot.compute_hash()
        self.header.final_score = snapshot.score
        self.header.final_wave = snapshot.wave

    def save(self, filename: str, compress: bool = True):
        """
        保存回放文件

        Args:
            filename: 文件名
            compress: 是否 zlib 压缩
        """
        payload = msgpack.packb({
            'header': self.header.to_dict(),
            'frames': [f.to_list() for f in self.frames],
        }, use_bin_type=True)

        body = zlib.compress(payload, level=9) if compress else payload

        with open(filename, 'wb') as f:
            f.write(MAGIC)
            f.write(b'Z' if compress else b'R')
            f.write(body)

        logger.info(f"Saved replay with {len(self.frames)} frames to {filename}")

    @classmethod
    def load(cls, filename: str) -> 'ReplayRecorder':
        """
        加载回放文件

        Raises:
            ValueError: 文件格式无效或内容损坏
        """
        with open(filename, 'rb') as f:
            magic = f.read(4)
            mode = f.read(1)
            body = f.read()

        if magic != MAGIC:
            raise ValueError(f"Invalid replay file format: {magic!r}")
        if mode not in (b'Z', b'R'):
            raise ValueError(f"Unknown replay encoding: {mode!r}")

        try:
            if mode == b'Z':
                body = zlib.decompress(body)
            parsed = msgpack.unpackb(body, raw=False)
            header = ReplayHeader.from_dict(parsed['header'])
            if not isinstance(header.config, dict):
                raise TypeError("config must be a mapping")
            frames = [ReplayFrame.from_list(f) for f in parsed['frames']]
        except (zlib.error, msgpack.UnpackException, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Corrupt replay file {filename}: {e}") from e

        recorder = cls()
        recorder.header = header
        recorder.frames = frames
        return recorder

    def get_stats(self) -> dict:
        """获取录制统计"""
        updates = sum(1 for f in self.frames if f.op == OP_UPDATE)
        return {
            'frame_count': len(self.frames),
            'update_count': updates,
            'seed': self.header.seed,
            'final_score': self.header.final_score,
            'final_wave': self.header.final_wave,
        }


class ReplayPlayer:
    """
    回放播放器

    用全新的引擎重新执行录制的操作序列。
    """

    def __init__(self, recorder: ReplayRecorder):
        self.recorder = recorder
        self.last_snapshot: Optional[StateSnapshot] = None

    @classmethod
    def from_file(cls, filename: str) -> 'ReplayPlayer':
        """从文件创建播放器"""
        return cls(ReplayRecorder.load(filename))

    def build_engine(self) -> GameEngine:
        header = self.recorder.header
        return GameEngine(config=Config.from_dict(header.config), seed=header.seed)

    def run(self, engine: Optional[GameEngine] = None) -> StateSnapshot:
        """
        执行全部操作

        Args:
            engine: 使用的引擎，默认按文件头新建

        Returns:
            回放结束时的状态快照
        """
        engine = engine or self.build_engine()

        for frame in self.recorder.frames:
            if frame.op == OP_START:
                engine.start()
            elif frame.op == OP_PAUSE:
                engine.toggle_pause()
            elif frame.op == OP_UPDATE:
                engine.update(Intents.from_flags(frame.flags), frame.dt_ms)
            else:
                raise ValueError(f"Unknown replay op: {frame.op!r}")

        self.last_snapshot = engine.snapshot()
        return self.last_snapshot

    def verify(self) -> bool:
        """
        重新执行并校验最终状态哈希

        Returns:
            True 如果与录制时一致
        """
        snapshot = self.run()
        expected = self.recorder.header.final_hash
        actual = snapshot.compute_hash()
        if actual != expected:
            logger.warning(f"Replay diverged: expected {expected}, got {actual}")
            return False
        return True
