"""
游戏配置模块

所有玩法常量（画布、玩家、敌人、波次、Boss、子弹、道具、排行榜）
都集中在这里，支持从 JSON 配置文件加载，方便非程序员调参。

使用方法：
    config = Config()
    config.load_from_file("custom_config.json")

    engine = GameEngine(config=config)
"""

from dataclasses import dataclass, field, asdict, fields
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CanvasConfig:
    """
    画布配置

    单位：像素。宽高必须大于 0（构造前置条件，不做运行时检查）。
    """
    width: float = 800.0
    height: float = 600.0


@dataclass
class TimingConfig:
    """
    时钟配置

    引擎由外部以固定频率驱动，每次 update() 推进一个逻辑步。
    未显式传入 dt_ms 时，每步推进 frame_time_ms 毫秒。
    """

    frame_rate: int = 60

    @property
    def frame_time_ms(self) -> int:
        """每帧时间（毫秒）"""
        return 1000 // self.frame_rate


@dataclass
class PlayerConfig:
    """
    玩家飞船配置

    冷却与持续时间单位均为毫秒（引擎时钟）。
    """

    width: float = 50.0
    height: float = 40.0
    speed: float = 8.0
    lives: int = 3
    bottom_margin: float = 20.0
    fire_cooldown_ms: int = 333
    rapid_fire_cooldown_ms: int = 125
    rapid_fire_duration_ms: int = 10000


@dataclass
class EnemyConfig:
    """
    敌人编队配置

    属性:
        drop_distance: 编队触边时整体下移的距离
        edge_margin: 触边判定的边距
        fire_interval_ms: 单个敌人两次射击的最小间隔
        fire_chance: 满足间隔后每次判定的射击概率
        power_up_drop_chance: 被击毁时掉落道具的概率
        base_speed / speed_per_wave: 波次驱动速度 = base + per_wave * wave
    """

    drop_distance: float = 20.0
    edge_margin: float = 10.0
    fire_interval_ms: int = 2000
    fire_chance: float = 0.01
    power_up_drop_chance: float = 0.05
    base_speed: float = 1.5
    speed_per_wave: float = 0.2


@dataclass
class WaveConfig:
    """
    波次 / 编队配置
    """

    boss_every: int = 5
    base_rows: int = 3
    max_rows: int = 6
    base_cols: int = 6
    max_cols: int = 10
    column_pitch: float = 50.0
    row_pitch: float = 45.0
    top_offset: float = 60.0
    error_row_after_wave: int = 2


@dataclass
class BossConfig:
    """
    Boss 配置

    血量 = base_health + (wave // boss_every) * health_per_appearance
    """

    width: float = 120.0
    height: float = 80.0
    y: float = 50.0
    speed: float = 2.0
    points: int = 500
    base_health: int = 10
    health_per_appearance: int = 5
    fire_interval_ms: int = 800
    fire_chance: float = 0.05


@dataclass
class ProjectileConfig:
    """子弹配置（速度为每帧像素，负数向上）"""

    width: float = 4.0
    height: float = 12.0
    player_velocity: float = -10.0
    enemy_velocity: float = 5.0


@dataclass
class PowerUpConfig:
    """道具配置"""

    size: float = 25.0
    fall_speed: float = 3.0


@dataclass
class ScoresConfig:
    """排行榜配置"""

    max_entries: int = 5
    file_name: str = 'highscores.json'


_SECTIONS = (
    'canvas', 'timing', 'player', 'enemy', 'wave',
    'boss', 'projectile', 'power_up', 'scores',
)


@dataclass
class Config:
    """
    游戏配置类

    每个引擎持有自己的实例，可从 JSON 文件加载。

    从文件加载:
        config.load_from_file("config.json")

    保存到文件:
        config.save_to_file("config.json")
    """

    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    enemy: EnemyConfig = field(default_factory=EnemyConfig)
    wave: WaveConfig = field(default_factory=WaveConfig)
    boss: BossConfig = field(default_factory=BossConfig)
    projectile: ProjectileConfig = field(default_factory=ProjectileConfig)
    power_up: PowerUpConfig = field(default_factory=PowerUpConfig)
    scores: ScoresConfig = field(default_factory=ScoresConfig)

    def load_from_file(self, path: str) -> bool:
        """
        从 JSON 文件加载配置

        Args:
            path: 配置文件路径

        Returns:
            True 如果成功；文件不存在或格式错误返回 False
        """
        config_path = Path(path)
        if not config_path.exists():
            logger.warning(f"Config file not found: {path}")
            return False

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid config JSON in {path}: {e}")
            return False
        except OSError as e:
            logger.warning(f"Failed to read config {path}: {e}")
            return False

        if not isinstance(data, dict):
            logger.warning(f"Config root must be an object: {path}")
            return False

        self.update_from_dict(data)
        logger.info(f"Loaded config: {path}")
        return True

    def save_to_file(self, path: str) -> bool:
        """
        保存配置到 JSON 文件

        Args:
            path: 配置文件路径

        Returns:
            True 如果成功
        """
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Failed to save config {path}: {e}")
            return False

        logger.info(f"Saved config: {path}")
        return True

    def update_from_dict(self, data: dict):
        """按节更新配置，未知的节和键被忽略"""
        for section in _SECTIONS:
            if isinstance(data.get(section), dict):
                self._update_dataclass(getattr(self, section), data[section])

    @staticmethod
    def _update_dataclass(obj, data: dict):
        """更新 dataclass 对象的属性"""
        names = {f.name for f in fields(obj)}
        for key, value in data.items():
            if key in names:
                setattr(obj, key, value)

    def to_dict(self) -> dict:
        """转换为字典"""
        return {section: asdict(getattr(self, section)) for section in _SECTIONS}

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        """从字典创建配置（缺省值补齐）"""
        config = cls()
        config.update_from_dict(data)
        return config

    def __str__(self) -> str:
        lines = ["=== Game Config ==="]
        lines.append(f"canvas: {self.canvas.width}x{self.canvas.height} @ {self.timing.frame_rate}fps")
        lines.append(f"player: lives={self.player.lives}, cooldown={self.player.fire_cooldown_ms}ms")
        lines.append(f"boss: every {self.wave.boss_every} waves, base health={self.boss.base_health}")
        return '\n'.join(lines)
