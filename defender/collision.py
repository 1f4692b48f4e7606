"""
碰撞检测与结算

- overlaps(): 严格的 AABB 重叠测试，边缘相接不算碰撞
- CollisionResolver: 按固定顺序结算一帧内的所有碰撞

结算顺序（每一遍都按容器的插入顺序遍历仍处于激活状态的对象）：
1. 玩家子弹 vs Boss（先判定，命中则该子弹不再参与第 2 步）
2. 玩家子弹 vs 敌人（命中第一个即停止扫描）
3. 敌方子弹 vs 玩家（生命归零立即 GameOver，跳过剩余结算）
4. 道具 vs 玩家

结算过程只修改 alive / active 标志，实体的移除统一在帧末进行。
"""

import logging

from .entities import Bounded, Enemy, PowerUp, PowerUpType, Projectile
from .events import EventType
from .powerups import PowerUpApplier
from .rng import DeterministicRNG
from .state import World

logger = logging.getLogger(__name__)

POWER_UP_TYPES = list(PowerUpType)


def overlaps(a: Bounded, b: Bounded) -> bool:
    """
    AABB 碰撞检测

    Args:
        a: 包围盒A
        b: 包围盒B

    Returns:
        True 如果两个包围盒在两个轴上都严格重叠
    """
    a_left, a_top, a_right, a_bottom = a.bounds()
    b_left, b_top, b_right, b_bottom = b.bounds()
    return (a_left < b_right and
            a_right > b_left and
            a_top < b_bottom and
            a_bottom > b_top)


class CollisionResolver:
    """
    碰撞结算器

    属性:
        world (World): 被修改的世界状态
        rng (DeterministicRNG): 道具掉落判定使用的随机源（与引擎共享）
        power_ups (PowerUpApplier): 拾取道具时调用
    """

    def __init__(self, world: World, rng: DeterministicRNG, power_ups: PowerUpApplier):
        self.world = world
        self.rng = rng
        self.power_ups = power_ups

    def resolve(self) -> bool:
        """
        结算本帧所有碰撞

        Returns:
            True 如果本帧进入了 GameOver
        """
        self._resolve_player_shots()
        if self._resolve_enemy_shots():
            return True
        self._resolve_power_up_pickups()
        return False

    def _resolve_player_shots(self):
        world = self.world
        for projectile in world.projectiles:
            if not (projectile.from_player and projectile.active):
                continue

            boss = world.boss
            if boss is not None and boss.is_alive and overlaps(projectile, boss):
                self._hit_boss(projectile)
                continue

            for enemy in world.enemies:
                if enemy.alive and overlaps(projectile, enemy):
                    self._destroy_enemy(projectile, enemy)
                    break

    def _hit_boss(self, projectile: Projectile):
        world = self.world
        boss = world.boss
        projectile.active = False
        defeated = boss.take_hit()
        world.outbox.emit(EventType.BOSS_HIT, health=boss.health)

        if defeated:
            world.award(boss.points)
            world.outbox.emit(EventType.SCORE_CHANGED, score=world.score)
            world.outbox.emit(EventType.BOSS_DEFEATED, points=boss.points)
            logger.info(f"Boss defeated on wave {world.wave}")

    def _destroy_enemy(self, projectile: Projectile, enemy: Enemy):
        world = self.world
        projectile.active = False
        enemy.alive = False
        world.award(enemy.points)
        world.outbox.emit(EventType.SCORE_CHANGED, score=world.score)
        world.outbox.emit(EventType.ENEMY_DESTROYED, points=enemy.points)

        if self.rng.chance(world.config.enemy.power_up_drop_chance):
            center_x, center_y = enemy.center
            kind = self.rng.pick(POWER_UP_TYPES)
            world.power_ups.append(PowerUp.drop(world.config, kind, center_x, center_y))
            logger.debug(f"Enemy dropped {kind.value}")

    def _resolve_enemy_shots(self) -> bool:
        world = self.world
        player = world.player
        for projectile in world.projectiles:
            if projectile.from_player or not projectile.active:
                continue
            if not overlaps(projectile, player):
                continue

            projectile.active = False
            shielded = player.take_hit()
            world.outbox.emit(EventType.PLAYER_HIT, shielded=shielded)
            world.outbox.emit(EventType.LIVES_CHANGED, lives=player.lives)

            if not player.is_alive:
                world.set_game_over()
                return True
        return False

    def _resolve_power_up_pickups(self):
        world = self.world
        for power_up in world.power_ups:
            if not power_up.active or not overlaps(power_up, world.player):
                continue
            power_up.active = False
            self.power_ups.apply(power_up.type)
            world.outbox.emit(EventType.POWER_UP_COLLECTED, type=power_up.type)
