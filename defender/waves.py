"""
波次生成

WaveSpawner 是波次号（和画布宽度）的纯函数：每次波次推进调用一次，
返回一个敌人编队或一个 Boss，二者恰好其一。
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .config import Config
from .entities import Boss, Enemy, EnemyType


@dataclass
class Wave:
    """
    一个波次的生成结果

    属性:
        number (int): 波次号，从 1 开始
        enemies (List[Enemy]): 编队敌人（Boss 波次为空）
        boss (Optional[Boss]): Boss（编队波次为 None）
        drive_speed (float): 本波编队的水平驱动速度
    """
    number: int
    enemies: List[Enemy] = field(default_factory=list)
    boss: Optional[Boss] = None
    drive_speed: float = 0.0

    @property
    def is_boss_wave(self) -> bool:
        return self.boss is not None


class WaveSpawner:
    """
    波次生成器

    规则（w 为波次号）：
    - w % 5 == 0 为 Boss 波次，Boss 血量 = 10 + (w // 5) * 5
    - 其余为编队：rows = min(3 + w // 3, 6)，cols = min(6 + w // 2, 10)
    - 编队水平居中，列距 50，行距 45，从顶部偏移 60 开始
    - 第 0 行在 w > 2 时为 Error；其余 row < rows // 2 为 Warning，否则 Clash
    - 驱动速度 = 1.5 + 0.2 * w

    以上常量均可通过 Config.wave / Config.boss / Config.enemy 调整。
    """

    def __init__(self, config: Config):
        self.config = config

    def is_boss_wave(self, wave: int) -> bool:
        return wave % self.config.wave.boss_every == 0

    def formation_size(self, wave: int) -> Tuple[int, int]:
        """
        编队尺寸

        Returns:
            (rows, cols)
        """
        cfg = self.config.wave
        rows = min(cfg.base_rows + wave // 3, cfg.max_rows)
        cols = min(cfg.base_cols + wave // 2, cfg.max_cols)
        return rows, cols

    def drive_speed(self, wave: int) -> float:
        cfg = self.config.enemy
        return cfg.base_speed + cfg.speed_per_wave * wave

    def enemy_type_for(self, wave: int, row: int, rows: int) -> EnemyType:
        if row == 0 and wave > self.config.wave.error_row_after_wave:
            return EnemyType.ERROR
        if row < rows // 2:
            return EnemyType.WARNING
        return EnemyType.CLASH

    def spawn(self, wave: int) -> Wave:
        """
        生成指定波次

        Args:
            wave: 波次号

        Returns:
            Wave 实例（编队或 Boss）
        """
        if self.is_boss_wave(wave):
            return Wave(number=wave, boss=Boss.spawn(self.config, wave))

        cfg = self.config.wave
        rows, cols = self.formation_size(wave)
        start_x = (self.config.canvas.width - cols * cfg.column_pitch) / 2

        enemies = []
        for row in range(rows):
            for col in range(cols):
                enemy_type = self.enemy_type_for(wave, row, rows)
                x = start_x + col * cfg.column_pitch
                y = cfg.top_offset + row * cfg.row_pitch
                enemies.append(Enemy.create(enemy_type, x, y))

        return Wave(number=wave, enemies=enemies, drive_speed=self.drive_speed(wave))
