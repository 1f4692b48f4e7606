"""
引擎事件与每帧发件箱

引擎不持有回调。每个会改变外部可见状态的动作都向 EventOutbox
追加一条 GameEvent，start() / update() 结束时把本帧事件按发出顺序
整体返回给调用方。渲染、音频、界面在自己的节奏里消费这些事件，
消费过程中不得同步回调引擎的修改接口。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class EventType(str, Enum):
    """事件类型"""
    SCORE_CHANGED = 'score_changed'
    WAVE_CHANGED = 'wave_changed'
    LIVES_CHANGED = 'lives_changed'
    GAME_OVER = 'game_over'
    POWER_UP_COLLECTED = 'power_up_collected'
    BOSS_DEFEATED = 'boss_defeated'
    ENEMY_DESTROYED = 'enemy_destroyed'
    PLAYER_HIT = 'player_hit'
    PLAYER_SHOT = 'player_shot'
    BOSS_HIT = 'boss_hit'


@dataclass(frozen=True)
class GameEvent:
    """
    单条事件记录

    属性:
        type (EventType): 事件类型
        tick (int): 发出事件时的逻辑帧号
        payload (dict): 最小负载，例如 {'score': 120}
    """
    type: EventType
    tick: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {'type': self.type.value, 'tick': self.tick, 'payload': dict(self.payload)}


class EventOutbox:
    """
    每帧事件发件箱

    属性:
        tick (int): 当前帧号，由引擎在每帧开始时设置
    """

    def __init__(self):
        self.tick = 0
        self._events: List[GameEvent] = []

    def emit(self, event_type: EventType, **payload) -> GameEvent:
        """追加一条事件"""
        event = GameEvent(type=event_type, tick=self.tick, payload=payload)
        self._events.append(event)
        return event

    def drain(self) -> List[GameEvent]:
        """取出并清空所有待发事件（保持发出顺序）"""
        events = self._events
        self._events = []
        return events

    def __len__(self) -> int:
        return len(self._events)
