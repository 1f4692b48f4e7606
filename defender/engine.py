"""
游戏引擎（编排器）

GameEngine 把各子系统组合为一个有序的逻辑帧，并持有状态机、分数和事件发件箱。

使用示例:
    engine = GameEngine(seed=42)
    events = engine.start()

    # 外部以固定频率调用
    events = engine.update(Intents(move_left=True, fire=True))
    for event in events:
        handle(event)  # 渲染 / 音频 / 界面，不得同步回调引擎

每帧顺序（仅在 Playing / BossWave 状态执行）：
1. 玩家：速射到期检查、左右移动（限制在画布内）、开火
2. 敌人或 Boss：编队整体移动 / 触边下移，或 Boss 往返移动；随机开火；触底判负
3. 子弹：移动，出界失效
4. 道具：下落，出界失效
5. 碰撞结算（见 collision.py）
6. 波次完成检查：清场后波次 +1 并生成下一波
帧末统一清除失效实体，然后返回本帧事件。
"""

from typing import List, Optional, Tuple
import logging

from .collision import CollisionResolver
from .config import Config
from .entities import Boss, Enemy, Player, PowerUp, Projectile
from .events import EventType, GameEvent
from .input import Intents, NO_INTENTS
from .powerups import PowerUpApplier
from .rng import DeterministicRNG
from .scores import HighScoreTable
from .state import GameState, StateSnapshot, World
from .waves import WaveSpawner

logger = logging.getLogger(__name__)


class GameEngine:
    """
    确定性模拟引擎

    单线程、不可重入：同一时刻只有一帧在执行，内部没有线程、锁或阻塞调用。
    时间只来自 update() 传入的 dt_ms，随机只来自持有的 DeterministicRNG，
    因此相同种子 + 相同输入序列会产生逐位相同的对局。

    属性:
        config (Config): 游戏配置
        rng (DeterministicRNG): 唯一的随机源
        scores (Optional[HighScoreTable]): 排行榜协作者，只在 GameOver 时访问
        qualifies_for_high_score (bool): 本局结束时分数是否可上榜
    """

    def __init__(self, config: Optional[Config] = None, seed: int = 1,
                 rng: Optional[DeterministicRNG] = None,
                 scores: Optional[HighScoreTable] = None):
        """
        初始化引擎

        Args:
            config: 游戏配置，默认使用一份新的 Config()
            seed: 随机种子（未注入 rng 时使用）
            rng: 注入的随机源
            scores: 排行榜协作者
        """
        self.config = config or Config()
        self.rng = rng or DeterministicRNG(seed)
        self.scores = scores
        self.spawner = WaveSpawner(self.config)
        self.world = World(self.config)
        self.power_up_applier = PowerUpApplier(self.world)
        self.collisions = CollisionResolver(self.world, self.rng, self.power_up_applier)
        self.qualifies_for_high_score = False
        self._high_score_recorded = False

    # ==================== 只读状态 ====================

    @property
    def state(self) -> GameState:
        return self.world.state

    @property
    def score(self) -> int:
        return self.world.score

    @property
    def wave(self) -> int:
        return self.world.wave

    @property
    def tick(self) -> int:
        return self.world.tick

    @property
    def clock_ms(self) -> int:
        return self.world.clock_ms

    @property
    def player(self) -> Player:
        return self.world.player

    @property
    def enemies(self) -> Tuple[Enemy, ...]:
        return tuple(self.world.enemies)

    @property
    def projectiles(self) -> Tuple[Projectile, ...]:
        return tuple(self.world.projectiles)

    @property
    def power_ups(self) -> Tuple[PowerUp, ...]:
        return tuple(self.world.power_ups)

    @property
    def boss(self) -> Optional[Boss]:
        return self.world.boss

    @property
    def drive_speed(self) -> float:
        return self.world.drive_speed

    def snapshot(self) -> StateSnapshot:
        """获取当前状态的只读快照"""
        return self.world.snapshot()

    # ==================== 控制接口 ====================

    def start(self) -> List[GameEvent]:
        """
        开始或重新开始一局

        分数清零、波次置 1、重建玩家并生成第 1 波。

        Returns:
            本次调用产生的事件（分数、波次、生命）
        """
        world = self.world
        world.outbox.drain()
        world.reset()
        self.qualifies_for_high_score = False
        self._high_score_recorded = False

        self._spawn_wave()

        world.outbox.emit(EventType.SCORE_CHANGED, score=world.score)
        world.outbox.emit(EventType.WAVE_CHANGED, wave=world.wave)
        world.outbox.emit(EventType.LIVES_CHANGED, lives=world.player.lives)
        logger.info(f"Game started (seed={self.rng.seed})")
        return world.outbox.drain()

    def toggle_pause(self) -> GameState:
        """
        切换暂停

        从暂停恢复时，当前有 Boss 则回到 BossWave，否则回到 Playing。
        其它状态下调用无效果。

        Returns:
            切换后的状态
        """
        world = self.world
        if world.state.is_active:
            world.state = GameState.PAUSED
        elif world.state == GameState.PAUSED:
            world.state = GameState.BOSS_WAVE if world.boss is not None else GameState.PLAYING
        return world.state

    def update(self, intents: Optional[Intents] = None,
               dt_ms: Optional[int] = None) -> List[GameEvent]:
        """
        执行一个逻辑帧

        非 Playing / BossWave 状态下直接返回空列表，时钟不推进。

        Args:
            intents: 本帧玩家意图，None 视为无操作
            dt_ms: 本帧时长（毫秒），默认 config.timing.frame_time_ms

        Returns:
            本帧事件，按发出顺序排列
        """
        world = self.world
        if not world.state.is_active:
            return []

        if dt_ms is None:
            dt_ms = self.config.timing.frame_time_ms
        world.advance_clock(dt_ms)

        self._step(intents or NO_INTENTS)
        world.purge_inactive()

        if world.state == GameState.GAME_OVER:
            self._on_game_over()

        return world.outbox.drain()

    # ==================== 帧内各阶段 ====================

    def _step(self, intents: Intents):
        world = self.world

        self._update_player(intents)

        if world.state == GameState.BOSS_WAVE:
            self._update_boss()
        elif self._update_enemies():
            return

        self._update_projectiles()
        self._update_power_ups()

        if self.collisions.resolve():
            return

        self._check_wave_complete()

    def _update_player(self, intents: Intents):
        world = self.world
        player = world.player
        now = world.clock_ms

        player.update_power_ups(now)

        if intents.move_left:
            player.move_left()
        if intents.move_right:
            player.move_right(self.config.canvas.width)

        if intents.fire and player.can_shoot(now):
            player.shoot(now)
            world.projectiles.append(
                Projectile.fire(self.config, player.x + player.width / 2, player.y, from_player=True)
            )
            world.outbox.emit(EventType.PLAYER_SHOT)

    def _update_enemies(self) -> bool:
        """
        编队移动与开火

        Returns:
            True 如果有敌人触底（已进入 GameOver）
        """
        world = self.world
        cfg = self.config.enemy
        alive = world.alive_enemies()
        if not alive:
            return False

        width = self.config.canvas.width
        hit_edge = any(enemy.is_at_edge(width, cfg.edge_margin) for enemy in alive)

        for enemy in alive:
            if hit_edge:
                enemy.reverse_direction()
                enemy.move_down(cfg.drop_distance)
            else:
                enemy.move(world.drive_speed)

            if enemy.should_shoot(world.clock_ms, self.rng, cfg.fire_interval_ms, cfg.fire_chance):
                world.projectiles.append(
                    Projectile.fire(self.config, enemy.x + enemy.width / 2, enemy.bottom, from_player=False)
                )

            if enemy.bottom >= world.player.y:
                logger.debug(f"Enemy reached the player line at y={enemy.bottom}")
                world.set_game_over()
                return True

        return False

    def _update_boss(self):
        world = self.world
        boss = world.boss
        if boss is None or not boss.is_alive:
            return

        cfg = self.config.boss
        boss.update(self.config.canvas.width)

        if boss.should_shoot(world.clock_ms, self.rng, cfg.fire_interval_ms, cfg.fire_chance):
            for x in boss.shot_positions():
                world.projectiles.append(
                    Projectile.fire(self.config, x, boss.bottom, from_player=False)
                )

    def _update_projectiles(self):
        world = self.world
        height = self.config.canvas.height
        for projectile in world.projectiles:
            projectile.update()
            if projectile.is_off_screen(height):
                projectile.active = False
        world.projectiles = [p for p in world.projectiles if p.active]

    def _update_power_ups(self):
        world = self.world
        height = self.config.canvas.height
        for power_up in world.power_ups:
            power_up.update()
            if power_up.is_off_screen(height):
                power_up.active = False
        world.power_ups = [p for p in world.power_ups if p.active]

    def _check_wave_complete(self):
        world = self.world
        if world.state == GameState.BOSS_WAVE:
            complete = world.boss is not None and not world.boss.is_alive
        else:
            complete = not world.alive_enemies()

        if complete:
            world.wave += 1
            world.outbox.emit(EventType.WAVE_CHANGED, wave=world.wave)
            self._spawn_wave()

    def _spawn_wave(self):
        world = self.world
        wave = self.spawner.spawn(world.wave)

        world.enemies = wave.enemies
        world.boss = wave.boss
        if wave.is_boss_wave:
            world.state = GameState.BOSS_WAVE
            logger.info(f"Boss wave {wave.number} (health={wave.boss.max_health})")
        else:
            world.state = GameState.PLAYING
            world.drive_speed = wave.drive_speed
            logger.info(f"Wave {wave.number}: {len(wave.enemies)} enemies")

    # ==================== 排行榜 ====================

    def _on_game_over(self):
        if self.scores is None:
            return
        self.qualifies_for_high_score = self.scores.is_qualifying(self.world.score)

    def submit_high_score(self, initials: str) -> bool:
        """
        提交本局成绩到排行榜

        只在 GameOver 状态、分数可上榜且本局尚未提交时生效。

        Args:
            initials: 玩家缩写（规范化为 3 个大写字母）

        Returns:
            True 如果已记录
        """
        if self.scores is None or self.world.state != GameState.GAME_OVER:
            return False
        if not self.qualifies_for_high_score or self._high_score_recorded:
            return False

        self.scores.record(initials, self.world.score, self.world.wave)
        self._high_score_recorded = True
        return True

    @property
    def top_score(self) -> int:
        """排行榜最高分，没有排行榜时为 0"""
        return self.scores.top_score() if self.scores is not None else 0
