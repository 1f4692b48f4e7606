"""
游戏状态管理和序列化

本模块提供：
- GameState: 游戏状态机的状态枚举
- World: 引擎独占的可变世界状态（实体、分数、波次、时钟、发件箱）
- StateSnapshot: 只读快照，用于外部读取、哈希校验和回放对比
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
import hashlib
import json
import logging

import msgpack

from .config import Config
from .entities import Boss, Enemy, Player, PowerUp, Projectile
from .events import EventOutbox, EventType

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    """
    游戏状态

    Ready -> Playing（start）
    Playing / BossWave <-> Paused（toggle_pause）
    Playing / BossWave -> GameOver（生命归零或敌人触底）
    GameOver 只能通过 start() 离开
    """
    READY = 'ready'
    PLAYING = 'playing'
    PAUSED = 'paused'
    GAME_OVER = 'game_over'
    BOSS_WAVE = 'boss_wave'

    @property
    def is_active(self) -> bool:
        """该状态下 update() 是否推进模拟"""
        return self in (GameState.PLAYING, GameState.BOSS_WAVE)


@dataclass(frozen=True)
class StateSnapshot:
    """
    游戏状态快照

    保存某一帧结束时的完整可见状态，用于：
    1. 渲染 / 界面读取（不会意外修改引擎）
    2. 回放校验（比较哈希）
    3. 调试对比

    属性:
        tick (int):
            快照对应的逻辑帧号。

        clock_ms (int):
            引擎时钟（毫秒）。

        state (str):
            GameState 的值，例如 'playing'。

        score / wave (int):
            当前分数与波次。

        player (dict):
            玩家序列化数据。

        enemies / projectiles / power_ups (Tuple[dict, ...]):
            各容器的序列化数据，保持容器顺序。

        boss (Optional[dict]):
            Boss 序列化数据，没有 Boss 时为 None。
    """
    tick: int
    clock_ms: int
    state: str
    score: int
    wave: int
    player: dict
    enemies: Tuple[dict, ...] = ()
    projectiles: Tuple[dict, ...] = ()
    power_ups: Tuple[dict, ...] = ()
    boss: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            'tick': self.tick,
            'clock_ms': self.clock_ms,
            'state': self.state,
            'score': self.score,
            'wave': self.wave,
            'player': self.player,
            'enemies': list(self.enemies),
            'projectiles': list(self.projectiles),
            'power_ups': list(self.power_ups),
            'boss': self.boss,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StateSnapshot':
        return cls(
            tick=data['tick'],
            clock_ms=data['clock_ms'],
            state=data['state'],
            score=data['score'],
            wave=data['wave'],
            player=data['player'],
            enemies=tuple(data.get('enemies', ())),
            projectiles=tuple(data.get('projectiles', ())),
            power_ups=tuple(data.get('power_ups', ())),
            boss=data.get('boss'),
        )

    def compute_hash(self) -> str:
        """
        计算状态的确定性哈希

        使用 MD5 算法对规范化 JSON 计算哈希。
        相同的状态永远产生相同的哈希。

        Returns:
            32字符的十六进制哈希字符串
        """
        state_str = json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':'))
        return hashlib.md5(state_str.encode()).hexdigest()

    def to_bytes(self) -> bytes:
        """msgpack 编码"""
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'StateSnapshot':
        """msgpack 解码"""
        return cls.from_dict(msgpack.unpackb(data, raw=False))


class World:
    """
    可变世界状态

    由 GameEngine 独占，各子系统（碰撞、道具）通过它修改状态。

    属性:
        state (GameState): 当前状态
        score (int): 分数，单局内单调不减
        wave (int): 波次，每次清场严格递增
        tick (int): 已执行的逻辑帧数
        clock_ms (int): 引擎时钟，所有冷却都与它比较
        player (Player): 玩家
        enemies (List[Enemy]): 当前编队（按生成顺序）
        projectiles (List[Projectile]): 子弹（按生成顺序）
        power_ups (List[PowerUp]): 道具（按生成顺序）
        boss (Optional[Boss]): Boss，同一时刻最多一个
        drive_speed (float): 本波编队驱动速度
        outbox (EventOutbox): 本帧事件
    """

    def __init__(self, config: Config):
        self.config = config
        self.state = GameState.READY
        self.score = 0
        self.wave = 1
        self.tick = 0
        self.clock_ms = 0
        self.player = Player.spawn(config)
        self.enemies: List[Enemy] = []
        self.projectiles: List[Projectile] = []
        self.power_ups: List[PowerUp] = []
        self.boss: Optional[Boss] = None
        self.drive_speed = config.enemy.base_speed
        self.outbox = EventOutbox()

    def reset(self):
        """开始新的一局"""
        self.score = 0
        self.wave = 1
        self.tick = 0
        self.clock_ms = 0
        self.player = Player.spawn(self.config)
        self.enemies = []
        self.projectiles = []
        self.power_ups = []
        self.boss = None
        self.drive_speed = self.config.enemy.base_speed
        self.outbox.tick = 0

    def advance_clock(self, dt_ms: int):
        """推进帧计数器和时钟"""
        self.tick += 1
        self.clock_ms += dt_ms
        self.outbox.tick = self.tick

    def alive_enemies(self) -> List[Enemy]:
        return [e for e in self.enemies if e.alive]

    def award(self, points: int):
        """加分（不发事件，由调用方决定何时发 SCORE_CHANGED）"""
        if points > 0:
            self.score += points

    def set_game_over(self):
        """切换到 GameOver 并发出事件"""
        self.state = GameState.GAME_OVER
        self.outbox.emit(EventType.GAME_OVER, score=self.score, wave=self.wave)
        logger.info(f"Game over at wave {self.wave} with score {self.score}")

    def purge_inactive(self):
        """帧末统一清除死亡 / 失效的实体"""
        self.enemies = [e for e in self.enemies if e.alive]
        self.projectiles = [p for p in self.projectiles if p.active]
        self.power_ups = [p for p in self.power_ups if p.active]

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            tick=self.tick,
            clock_ms=self.clock_ms,
            state=self.state.value,
            score=self.score,
            wave=self.wave,
            player=self.player.serialize(),
            enemies=tuple(e.serialize() for e in self.enemies),
            projectiles=tuple(p.serialize() for p in self.projectiles),
            power_ups=tuple(p.serialize() for p in self.power_ups),
            boss=self.boss.serialize() if self.boss else None,
        )
