"""
道具效果

PowerUpApplier 把拾取到的道具翻译为对世界状态的修改：
- PURGE_ALL: 所有存活敌人被摧毁，每个按半分（向下取整）结算，只发一次 SCORE_CHANGED
- ADMIN_MODE: 开启速射，到期时间从现在重新计算（重复拾取刷新而不叠加）
- BACKUP_SAVE: 开启护盾（已有护盾时无额外效果）
"""

import logging

from .entities import PowerUpType
from .events import EventType
from .state import World

logger = logging.getLogger(__name__)


class PowerUpApplier:
    """道具效果应用器"""

    def __init__(self, world: World):
        self.world = world

    def apply(self, power_up_type: PowerUpType):
        """
        应用道具效果

        Args:
            power_up_type: 道具类型
        """
        if power_up_type == PowerUpType.PURGE_ALL:
            self._purge_all()
        elif power_up_type == PowerUpType.ADMIN_MODE:
            self._admin_mode()
        elif power_up_type == PowerUpType.BACKUP_SAVE:
            self.world.player.has_shield = True

    def _purge_all(self):
        world = self.world
        bonus = 0
        for enemy in world.alive_enemies():
            enemy.alive = False
            bonus += enemy.points // 2
        world.award(bonus)
        world.outbox.emit(EventType.SCORE_CHANGED, score=world.score)
        logger.debug(f"Purge cleared the formation for {bonus} points")

    def _admin_mode(self):
        world = self.world
        world.player.apply_rapid_fire(world.clock_ms, world.config.player.rapid_fire_duration_ms)
