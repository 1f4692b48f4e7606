"""
Player intents for the simulation core
"""

from dataclasses import dataclass
from enum import IntFlag


class IntentFlags(IntFlag):
    """意图标志位"""
    NONE = 0
    MOVE_LEFT = 1 << 0
    MOVE_RIGHT = 1 << 1
    FIRE = 1 << 2


@dataclass(frozen=True)
class Intents:
    """
    单帧玩家意图

    引擎只关心抽象意图，不关心按键或设备。
    左右同时按下时两个方向都会生效（先左后右），与原始输入处理一致。
    """
    move_left: bool = False
    move_right: bool = False
    fire: bool = False

    @property
    def flags(self) -> IntentFlags:
        """压缩为标志位（用于回放记录）"""
        flags = IntentFlags.NONE
        if self.move_left:
            flags |= IntentFlags.MOVE_LEFT
        if self.move_right:
            flags |= IntentFlags.MOVE_RIGHT
        if self.fire:
            flags |= IntentFlags.FIRE
        return flags

    @classmethod
    def from_flags(cls, flags: int) -> 'Intents':
        """从标志位还原"""
        return cls(
            move_left=bool(flags & IntentFlags.MOVE_LEFT),
            move_right=bool(flags & IntentFlags.MOVE_RIGHT),
            fire=bool(flags & IntentFlags.FIRE),
        )


NO_INTENTS = Intents()
