"""
游戏实体

本模块定义模拟核心中的被动数据和每个实体自身的行为：
- Player: 玩家飞船（移动、开火冷却、护盾、速射）
- Enemy: 编队敌人（Clash / Warning / Error 三种类型）
- Boss: 每 5 波出现一次的高血量敌人
- Projectile: 子弹（玩家向上、敌人向下）
- PowerUp: 敌人被击毁时掉落的道具

坐标系：原点在画布左上角，x 向右，y 向下，单位像素。
所有冷却判定都是与引擎时钟（毫秒）的比较，不读取墙上时钟。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .config import Config
from .rng import DeterministicRNG


Bounds = Tuple[float, float, float, float]


class Bounded:
    """
    轴对齐包围盒混入类

    要求宿主提供 x, y, width, height 四个属性。
    """

    def bounds(self) -> Bounds:
        """
        获取碰撞边界

        Returns:
            (left, top, right, bottom) 元组
        """
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def bottom(self) -> float:
        return self.y + self.height


# ==================== 玩家 ====================

@dataclass
class Player(Bounded):
    """
    玩家飞船

    属性:
        x, y (float):
            左上角坐标。y 固定在画布底部上方。

        width, height (float):
            飞船尺寸（固定）。

        speed (float):
            每帧水平移动距离。

        lives (int):
            剩余生命，始终 >= 0。

        has_shield (bool):
            护盾。吸收一次伤害后清除，不叠加。

        has_rapid_fire (bool):
            速射状态，开火冷却缩短。

        rapid_fire_until_ms (int):
            速射结束时刻（引擎时钟）。

        last_shot_ms (Optional[int]):
            上次开火时刻，None 表示本局尚未开火。

        fire_cooldown_ms / rapid_fire_cooldown_ms (int):
            普通 / 速射状态下的开火冷却。
    """
    x: float
    y: float
    width: float = 50.0
    height: float = 40.0
    speed: float = 8.0
    lives: int = 3
    has_shield: bool = False
    has_rapid_fire: bool = False
    rapid_fire_until_ms: int = 0
    last_shot_ms: Optional[int] = None
    fire_cooldown_ms: int = 333
    rapid_fire_cooldown_ms: int = 125

    @classmethod
    def spawn(cls, config: Config) -> 'Player':
        """
        在画布底部居中创建飞船

        Args:
            config: 游戏配置

        Returns:
            Player 实例
        """
        cfg = config.player
        return cls(
            x=(config.canvas.width - cfg.width) / 2,
            y=config.canvas.height - cfg.height - cfg.bottom_margin,
            width=cfg.width,
            height=cfg.height,
            speed=cfg.speed,
            lives=cfg.lives,
            fire_cooldown_ms=cfg.fire_cooldown_ms,
            rapid_fire_cooldown_ms=cfg.rapid_fire_cooldown_ms,
        )

    @property
    def is_alive(self) -> bool:
        return self.lives > 0

    @property
    def current_cooldown_ms(self) -> int:
        """当前生效的开火冷却"""
        return self.rapid_fire_cooldown_ms if self.has_rapid_fire else self.fire_cooldown_ms

    def can_shoot(self, now_ms: int) -> bool:
        """距离上次开火是否已超过冷却时间"""
        if self.last_shot_ms is None:
            return True
        return now_ms - self.last_shot_ms >= self.current_cooldown_ms

    def shoot(self, now_ms: int):
        """记录开火时刻"""
        self.last_shot_ms = now_ms

    def move_left(self, min_x: float = 0.0):
        self.x = max(min_x, self.x - self.speed)

    def move_right(self, max_x: float):
        self.x = min(max_x - self.width, self.x + self.speed)

    def update_power_ups(self, now_ms: int):
        """速射到期后关闭"""
        if self.has_rapid_fire and now_ms > self.rapid_fire_until_ms:
            self.has_rapid_fire = False

    def apply_rapid_fire(self, now_ms: int, duration_ms: int):
        """开启速射，到期时间从现在重新计算（刷新而非叠加）"""
        self.has_rapid_fire = True
        self.rapid_fire_until_ms = now_ms + duration_ms

    def take_hit(self) -> bool:
        """
        承受一次伤害

        Returns:
            True 如果护盾吸收了伤害，False 如果损失了一条生命
        """
        if self.has_shield:
            self.has_shield = False
            return True
        if self.lives > 0:
            self.lives -= 1
        return False

    def serialize(self) -> dict:
        return {
            'x': self.x,
            'y': self.y,
            'lives': self.lives,
            'shield': self.has_shield,
            'rapid_fire': self.has_rapid_fire,
            'rapid_fire_until_ms': self.rapid_fire_until_ms,
            'last_shot_ms': self.last_shot_ms,
        }


# ==================== 敌人 ====================

class EnemyType(str, Enum):
    """敌人类型"""
    CLASH = 'clash'
    WARNING = 'warning'
    ERROR = 'error'


@dataclass(frozen=True)
class EnemyStats:
    """每种敌人的固定属性"""
    size: float
    points: int
    speed: float
    can_shoot: bool


ENEMY_STATS: Dict[EnemyType, EnemyStats] = {
    EnemyType.CLASH: EnemyStats(size=35.0, points=10, speed=1.0, can_shoot=False),
    EnemyType.WARNING: EnemyStats(size=32.0, points=25, speed=1.3, can_shoot=False),
    EnemyType.ERROR: EnemyStats(size=30.0, points=50, speed=1.5, can_shoot=True),
}


@dataclass
class Enemy(Bounded):
    """
    编队敌人

    只由 WaveSpawner 创建。被击中时 alive 置为 False，
    在帧末统一清除。

    属性:
        type (EnemyType): 敌人类型
        x, y (float): 左上角坐标
        width, height (float): 尺寸（由类型决定）
        points (int): 击毁得分
        speed (float): 水平速度倍率，实际步长 = 方向 * 波次驱动速度 * speed
        can_shoot (bool): 是否会开火（仅 Error）
        alive (bool): 是否存活
        direction (int): 水平方向，1 向右，-1 向左
        last_shot_ms (Optional[int]): 上次开火时刻
    """
    type: EnemyType
    x: float
    y: float
    width: float = 35.0
    height: float = 35.0
    points: int = 10
    speed: float = 1.0
    can_shoot: bool = False
    alive: bool = True
    direction: int = 1
    last_shot_ms: Optional[int] = None

    @classmethod
    def create(cls, enemy_type: EnemyType, x: float, y: float) -> 'Enemy':
        """按类型属性表创建敌人"""
        stats = ENEMY_STATS[enemy_type]
        return cls(
            type=enemy_type,
            x=x,
            y=y,
            width=stats.size,
            height=stats.size,
            points=stats.points,
            speed=stats.speed,
            can_shoot=stats.can_shoot,
        )

    def move(self, drive_speed: float):
        self.x += self.direction * drive_speed * self.speed

    def move_down(self, amount: float):
        self.y += amount

    def reverse_direction(self):
        self.direction = -self.direction

    def is_at_edge(self, canvas_width: float, margin: float) -> bool:
        """
        是否已贴近前进方向上的画布边缘

        只检查前进方向，这样反向后的编队不会在下一帧再次触发。
        """
        if self.direction > 0:
            return self.x + self.width >= canvas_width - margin
        return self.x <= margin

    def should_shoot(self, now_ms: int, rng: DeterministicRNG,
                     interval_ms: int, chance: float) -> bool:
        """
        开火判定

        不能开火或冷却未到时不消耗随机数。

        Returns:
            True 如果本帧开火（同时记录开火时刻）
        """
        if not self.can_shoot:
            return False
        if self.last_shot_ms is not None and now_ms - self.last_shot_ms < interval_ms:
            return False
        if rng.chance(chance):
            self.last_shot_ms = now_ms
            return True
        return False

    def serialize(self) -> dict:
        return {
            'type': self.type.value,
            'x': self.x,
            'y': self.y,
            'alive': self.alive,
            'direction': self.direction,
            'last_shot_ms': self.last_shot_ms,
        }


# ==================== Boss ====================

@dataclass
class Boss(Bounded):
    """
    Boss

    每个 Boss 波次只存在一个实例，波次推进时丢弃。
    health > 0 即存活，take_hit() 不会把血量扣到 0 以下。
    """
    x: float
    y: float
    max_health: int
    health: int
    width: float = 120.0
    height: float = 80.0
    points: int = 500
    speed: float = 2.0
    direction: int = 1
    last_shot_ms: Optional[int] = None

    @classmethod
    def spawn(cls, config: Config, wave: int) -> 'Boss':
        """在画布顶部水平居中创建 Boss，血量随出现次数递增"""
        cfg = config.boss
        max_health = cfg.base_health + (wave // config.wave.boss_every) * cfg.health_per_appearance
        return cls(
            x=(config.canvas.width - cfg.width) / 2,
            y=cfg.y,
            max_health=max_health,
            health=max_health,
            width=cfg.width,
            height=cfg.height,
            points=cfg.points,
            speed=cfg.speed,
        )

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def update(self, canvas_width: float):
        """水平移动，碰到任一边缘时反向"""
        self.x += self.direction * self.speed

        if self.x <= 0:
            self.x = 0.0
            self.direction = 1
        elif self.x >= canvas_width - self.width:
            self.x = canvas_width - self.width
            self.direction = -1

    def take_hit(self) -> bool:
        """
        承受一次命中

        Returns:
            True 如果这一击击败了 Boss
        """
        if self.health > 0:
            self.health -= 1
        return not self.is_alive

    def should_shoot(self, now_ms: int, rng: DeterministicRNG,
                     interval_ms: int, chance: float) -> bool:
        if self.last_shot_ms is not None and now_ms - self.last_shot_ms < interval_ms:
            return False
        if rng.chance(chance):
            self.last_shot_ms = now_ms
            return True
        return False

    def shot_positions(self) -> List[float]:
        """三连发的 x 坐标（宽度的 25% / 50% / 75%）"""
        return [
            self.x + self.width * 0.25,
            self.x + self.width * 0.5,
            self.x + self.width * 0.75,
        ]

    def serialize(self) -> dict:
        return {
            'x': self.x,
            'y': self.y,
            'health': self.health,
            'max_health': self.max_health,
            'direction': self.direction,
            'last_shot_ms': self.last_shot_ms,
        }


# ==================== 子弹 ====================

@dataclass
class Projectile(Bounded):
    """
    子弹

    velocity 为每帧竖直位移：负数向上（玩家），正数向下（敌人 / Boss）。
    """
    x: float
    y: float
    velocity: float
    from_player: bool
    width: float = 4.0
    height: float = 12.0
    active: bool = True

    @classmethod
    def fire(cls, config: Config, center_x: float, y: float, from_player: bool) -> 'Projectile':
        """
        创建子弹

        Args:
            center_x: 子弹中心 x（内部换算为左边缘）
            y: 子弹顶部 y
            from_player: 是否为玩家子弹
        """
        cfg = config.projectile
        return cls(
            x=center_x - cfg.width / 2,
            y=y,
            velocity=cfg.player_velocity if from_player else cfg.enemy_velocity,
            from_player=from_player,
            width=cfg.width,
            height=cfg.height,
        )

    def update(self):
        self.y += self.velocity

    def is_off_screen(self, canvas_height: float) -> bool:
        return self.y < -self.height or self.y > canvas_height

    def serialize(self) -> dict:
        return {
            'x': self.x,
            'y': self.y,
            'velocity': self.velocity,
            'from_player': self.from_player,
            'active': self.active,
        }


# ==================== 道具 ====================

class PowerUpType(str, Enum):
    """道具类型"""
    PURGE_ALL = 'purge_all'      # 清屏，半分结算
    ADMIN_MODE = 'admin_mode'    # 速射
    BACKUP_SAVE = 'backup_save'  # 护盾


@dataclass
class PowerUp(Bounded):
    """下落中的道具"""
    type: PowerUpType
    x: float
    y: float
    width: float = 25.0
    height: float = 25.0
    fall_speed: float = 3.0
    active: bool = True

    @classmethod
    def drop(cls, config: Config, power_up_type: PowerUpType,
             center_x: float, center_y: float) -> 'PowerUp':
        """以给定点为中心生成道具"""
        size = config.power_up.size
        return cls(
            type=power_up_type,
            x=center_x - size / 2,
            y=center_y - size / 2,
            width=size,
            height=size,
            fall_speed=config.power_up.fall_speed,
        )

    def update(self):
        self.y += self.fall_speed

    def is_off_screen(self, canvas_height: float) -> bool:
        return self.y > canvas_height

    def serialize(self) -> dict:
        return {
            'type': self.type.value,
            'x': self.x,
            'y': self.y,
            'active': self.active,
        }
