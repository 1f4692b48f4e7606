"""
Integration tests for the game engine, replays and command line tools
"""

import zlib

import msgpack
import pytest

from defender.cli import autopilot_intents, main
from defender.config import Config
from defender.engine import GameEngine
from defender.entities import Enemy, EnemyType, PowerUp, PowerUpType, Projectile
from defender.events import EventType
from defender.input import Intents
from defender.replay import MAGIC, ReplayPlayer, ReplayRecorder
from defender.rng import DeterministicRNG
from defender.scores import HighScoreTable
from defender.state import GameState


FIRE = Intents(fire=True)


class AlwaysRNG(DeterministicRNG):
    """所有概率判定都成立的随机源"""

    def chance(self, probability: float) -> bool:
        return True


def started_engine(**kwargs) -> GameEngine:
    engine = GameEngine(**kwargs)
    engine.start()
    return engine


def shoot_player(engine: GameEngine) -> Projectile:
    """在玩家位置放一颗敌方子弹"""
    player = engine.player
    projectile = Projectile.fire(engine.config, player.center[0], player.y, from_player=False)
    engine.world.projectiles.append(projectile)
    return projectile


def advance_to_boss_wave(engine: GameEngine):
    """清空第 4 波，进入第 5 波 Boss"""
    engine.world.wave = 4
    for enemy in engine.world.enemies:
        enemy.alive = False
    return engine.update()


def play(engine: GameEngine, ticks: int, recorder: ReplayRecorder = None) -> list:
    events = []
    for _ in range(ticks):
        if engine.state == GameState.GAME_OVER:
            break
        intents = autopilot_intents(engine)
        events.extend(engine.update(intents))
        if recorder:
            recorder.record_update(intents)
    return events


# ==================== 生命周期测试 ====================

class TestLifecycle:
    """开始 / 暂停 / 结束 测试"""

    def test_ready_does_not_advance(self):
        """测试未开始时 update 无效果"""
        engine = GameEngine()

        assert engine.state == GameState.READY
        assert engine.update(FIRE) == []
        assert engine.tick == 0
        assert engine.clock_ms == 0

    def test_start(self):
        """测试开始一局"""
        engine = GameEngine()
        events = engine.start()

        assert engine.state == GameState.PLAYING
        assert engine.score == 0
        assert engine.wave == 1
        assert len(engine.enemies) == 18
        assert (engine.player.x, engine.player.y) == (375, 540)
        assert [e.type for e in events] == [
            EventType.SCORE_CHANGED, EventType.WAVE_CHANGED, EventType.LIVES_CHANGED,
        ]
        assert events[2].payload == {'lives': 3}

    def test_default_frame_time(self):
        """测试默认帧时长"""
        engine = started_engine()
        engine.update()
        engine.update()

        assert engine.tick == 2
        assert engine.clock_ms == 32

    def test_pause_freezes_state(self):
        """测试暂停期间状态不变"""
        engine = started_engine()
        engine.update(FIRE)

        assert engine.toggle_pause() == GameState.PAUSED
        before = engine.snapshot().compute_hash()

        for _ in range(10):
            assert engine.update(FIRE) == []

        assert engine.snapshot().compute_hash() == before
        assert engine.toggle_pause() == GameState.PLAYING

    def test_resume_returns_to_boss_wave(self):
        """测试 Boss 波次暂停后恢复为 BossWave"""
        engine = started_engine()
        advance_to_boss_wave(engine)
        assert engine.state == GameState.BOSS_WAVE

        engine.toggle_pause()
        assert engine.toggle_pause() == GameState.BOSS_WAVE

    def test_restart_after_game_over(self):
        """测试 GameOver 后重新开始"""
        engine = started_engine()
        engine.world.player.lives = 1
        shoot_player(engine)
        engine.update()
        assert engine.state == GameState.GAME_OVER

        engine.start()

        assert engine.state == GameState.PLAYING
        assert engine.score == 0
        assert engine.wave == 1
        assert engine.player.lives == 3
        assert engine.projectiles == ()


# ==================== 玩家测试 ====================

class TestPlayerControl:
    """玩家控制测试"""

    def test_fire_cooldown(self):
        """测试 333ms 开火冷却"""
        engine = started_engine()

        first = engine.update(FIRE, dt_ms=16)
        second = engine.update(FIRE, dt_ms=16)
        third = engine.update(FIRE, dt_ms=317)

        assert EventType.PLAYER_SHOT in [e.type for e in first]
        assert EventType.PLAYER_SHOT not in [e.type for e in second]
        assert EventType.PLAYER_SHOT in [e.type for e in third]
        assert engine.clock_ms == 349
        assert len(engine.projectiles) == 2

    def test_movement_clamped(self):
        """测试移动限制在画布内"""
        engine = started_engine()

        engine.world.player.x = 2
        engine.update(Intents(move_left=True))
        assert engine.player.x == 0

        engine.world.player.x = 748
        engine.update(Intents(move_right=True))
        assert engine.player.x == 750

    def test_power_up_pickup(self):
        """测试拾取速射道具"""
        engine = started_engine()
        cx, cy = engine.player.center
        engine.world.power_ups.append(PowerUp.drop(engine.config, PowerUpType.ADMIN_MODE, cx, cy))

        events = engine.update()

        assert engine.player.has_rapid_fire
        assert engine.player.rapid_fire_until_ms == 16 + 10000
        assert engine.power_ups == ()
        assert events[-1].type == EventType.POWER_UP_COLLECTED

    def test_off_screen_entities_purged(self):
        """测试出界的子弹和道具被清除"""
        engine = started_engine()
        engine.world.projectiles.append(
            Projectile(x=100, y=-5, velocity=-10, from_player=True))
        engine.world.power_ups.append(
            PowerUp(type=PowerUpType.BACKUP_SAVE, x=10, y=598))

        engine.update()

        assert engine.projectiles == ()
        assert engine.power_ups == ()


# ==================== 编队测试 ====================

class TestFormation:
    """编队移动测试"""

    def test_edge_reverses_and_drops(self):
        """测试触边后整体反向并下移"""
        engine = started_engine()
        edge = Enemy.create(EnemyType.CLASH, 755, 100)
        other = Enemy.create(EnemyType.CLASH, 400, 100)
        engine.world.enemies = [edge, other]

        engine.update()

        assert edge.direction == -1
        assert other.direction == -1
        assert (edge.x, edge.y) == (755, 120)
        assert other.y == 120

        engine.update()

        assert edge.x == pytest.approx(755 - 1.7)
        assert edge.y == 120

    def test_enemy_reaching_player_line(self):
        """测试敌人触底判负"""
        engine = started_engine()
        engine.world.enemies = [Enemy.create(EnemyType.CLASH, 400, 505)]

        events = engine.update()

        assert engine.state == GameState.GAME_OVER
        assert events[-1].type == EventType.GAME_OVER
        assert engine.update() == []

    def test_wave_cleared_spawns_next(self):
        """测试清场后生成下一波"""
        engine = started_engine()
        for enemy in engine.world.enemies:
            enemy.alive = False

        events = engine.update()

        assert engine.wave == 2
        assert len(engine.enemies) == 21
        assert engine.drive_speed == pytest.approx(1.9)
        assert [e.payload for e in events if e.type == EventType.WAVE_CHANGED] == [{'wave': 2}]

    def test_error_enemy_fires_from_bottom_edge(self):
        """测试 Error 敌人从底边开火，受开火间隔限制"""
        engine = started_engine(rng=AlwaysRNG(1))
        shooter = Enemy.create(EnemyType.ERROR, 400, 100)
        bystander = Enemy.create(EnemyType.CLASH, 200, 100)
        engine.world.enemies = [shooter, bystander]

        engine.update()
        shots = [p for p in engine.projectiles if not p.from_player]

        assert len(shots) == 1
        assert shots[0].center[0] == pytest.approx(shooter.center[0])
        assert shots[0].y == pytest.approx(shooter.bottom + engine.config.projectile.enemy_velocity)
        assert shots[0].velocity > 0
        assert shooter.last_shot_ms == engine.clock_ms

        engine.update()
        assert len([p for p in engine.projectiles if not p.from_player]) == 1

    def test_error_row_fires_on_wave_three(self):
        """测试第 3 波的 Error 行会开火"""
        engine = started_engine(rng=AlwaysRNG(1))
        engine.world.wave = 2
        for enemy in engine.world.enemies:
            enemy.alive = False
        engine.update()
        assert engine.wave == 3

        engine.update()
        shots = [p for p in engine.projectiles if not p.from_player]
        error_count = sum(1 for e in engine.enemies if e.type == EnemyType.ERROR)

        assert error_count == 7
        assert len(shots) == error_count


# ==================== Boss 测试 ====================

class TestBossWave:
    """Boss 波次测试"""

    def test_boss_spawns_on_wave_five(self):
        """测试第 5 波出现 Boss"""
        engine = started_engine()
        advance_to_boss_wave(engine)

        assert engine.wave == 5
        assert engine.enemies == ()
        assert engine.boss.max_health == 15
        assert engine.boss.health == 15

    def test_boss_moves_and_fires_volley(self):
        """测试 Boss 在帧内移动并发射三连发"""
        engine = started_engine(rng=AlwaysRNG(1))
        advance_to_boss_wave(engine)
        boss = engine.boss
        assert engine.projectiles == ()

        engine.update()
        shots = [p for p in engine.projectiles if not p.from_player]

        assert boss.x == 342
        assert len(shots) == 3
        assert [p.center[0] for p in shots] == [
            boss.x + boss.width * 0.25,
            boss.x + boss.width * 0.5,
            boss.x + boss.width * 0.75,
        ]
        assert all(p.velocity > 0 for p in shots)
        assert all(p.y == boss.bottom + engine.config.projectile.enemy_velocity for p in shots)

        engine.update()
        assert len([p for p in engine.projectiles if not p.from_player]) == 3

    def test_boss_defeat_advances_wave(self):
        """测试击败 Boss 后进入下一波"""
        engine = started_engine()
        advance_to_boss_wave(engine)
        engine.world.boss.health = 1
        engine.world.projectiles.append(
            Projectile.fire(engine.config, 400, 100, from_player=True))

        events = engine.update()
        types = [e.type for e in events]

        assert engine.score == 500
        assert engine.wave == 6
        assert engine.state == GameState.PLAYING
        assert engine.boss is None
        assert len(engine.enemies) == 45
        assert types.index(EventType.BOSS_DEFEATED) < types.index(EventType.WAVE_CHANGED)


# ==================== 生命与 GameOver 测试 ====================

class TestGameOver:
    """GameOver 测试"""

    def test_last_life_lost(self):
        """测试最后一条命被击中"""
        engine = started_engine()
        engine.world.player.lives = 1
        shoot_player(engine)
        second = shoot_player(engine)

        events = engine.update()
        types = [e.type for e in events]

        assert engine.state == GameState.GAME_OVER
        assert engine.player.lives == 0
        assert second.active
        assert second in engine.projectiles
        assert types[-3:] == [EventType.PLAYER_HIT, EventType.LIVES_CHANGED, EventType.GAME_OVER]

    def test_shield_absorbs_hit(self):
        """测试护盾吸收一次伤害"""
        engine = started_engine()
        engine.world.player.has_shield = True

        shoot_player(engine)
        engine.update()
        assert engine.player.lives == 3
        assert not engine.player.has_shield

        shoot_player(engine)
        engine.update()
        assert engine.player.lives == 2


# ==================== 排行榜测试 ====================

class TestHighScores:
    """引擎与排行榜协作测试"""

    def test_submit_after_game_over(self, tmp_path):
        """测试 GameOver 后提交成绩"""
        table = HighScoreTable(tmp_path / 'scores.json')
        engine = started_engine(scores=table)

        assert not engine.submit_high_score('abc')

        engine.world.score = 1200
        engine.world.player.lives = 1
        shoot_player(engine)
        engine.update()

        assert engine.qualifies_for_high_score
        assert engine.submit_high_score('abc')
        assert not engine.submit_high_score('abc')
        assert engine.top_score == 1200
        assert HighScoreTable(tmp_path / 'scores.json').entries[0].initials == 'ABC'

    def test_without_table(self):
        """测试没有排行榜时的行为"""
        engine = started_engine()
        engine.world.player.lives = 1
        shoot_player(engine)
        engine.update()

        assert not engine.qualifies_for_high_score
        assert not engine.submit_high_score('abc')
        assert engine.top_score == 0


# ==================== 确定性与回放测试 ====================

class TestDeterminism:
    """确定性测试"""

    def test_same_seed_same_game(self):
        """测试相同种子 + 相同输入得到相同状态"""
        engine1 = started_engine(seed=7)
        engine2 = started_engine(seed=7)

        events1 = play(engine1, 600)
        events2 = play(engine2, 600)

        assert [e.to_dict() for e in events1] == [e.to_dict() for e in events2]
        assert engine1.snapshot().compute_hash() == engine2.snapshot().compute_hash()

    def test_custom_config(self):
        """测试注入配置"""
        config = Config()
        config.player.lives = 5
        config.timing.frame_rate = 50
        engine = started_engine(config=config)
        engine.update()

        assert engine.player.lives == 5
        assert engine.clock_ms == 20


class TestReplay:
    """回放测试"""

    def record_game(self, seed: int = 11, ticks: int = 300) -> ReplayRecorder:
        engine = GameEngine(seed=seed)
        recorder = ReplayRecorder(seed=seed, config=engine.config)

        engine.start()
        recorder.record_start()
        play(engine, ticks // 2, recorder)
        engine.toggle_pause()
        recorder.record_pause()
        engine.update(FIRE)
        recorder.record_update(FIRE)
        engine.toggle_pause()
        recorder.record_pause()
        play(engine, ticks // 2, recorder)

        recorder.finish(engine.snapshot())
        return recorder

    def test_save_load_verify(self, tmp_path):
        """测试保存、加载、校验"""
        path = str(tmp_path / 'game.replay')
        recorder = self.record_game()
        recorder.save(path)

        player = ReplayPlayer.from_file(path)

        assert player.recorder.header.seed == 11
        assert len(player.recorder.frames) == len(recorder.frames)
        assert player.verify()
        assert player.last_snapshot.score == recorder.header.final_score

    def test_uncompressed(self, tmp_path):
        """测试不压缩保存"""
        path = str(tmp_path / 'raw.replay')
        recorder = self.record_game(ticks=60)
        recorder.save(path, compress=False)

        assert ReplayPlayer.from_file(path).verify()

    def test_tampered_hash_fails(self):
        """测试哈希不一致时校验失败"""
        recorder = self.record_game(ticks=60)
        recorder.header.final_hash = '0' * 32

        assert not ReplayPlayer(recorder).verify()

    def test_invalid_file(self, tmp_path):
        """测试无效文件"""
        path = tmp_path / 'bad.replay'
        path.write_bytes(b'XXXXZ' + b'\x00' * 8)
        with pytest.raises(ValueError):
            ReplayRecorder.load(str(path))

        path.write_bytes(MAGIC + b'Q')
        with pytest.raises(ValueError):
            ReplayRecorder.load(str(path))

    @pytest.mark.parametrize('body', [
        b'Z' + b'not zlib data',
        b'R' + b'\xc1',
        b'R' + msgpack.packb({'frames': []}),
        b'Z' + zlib.compress(msgpack.packb({'header': {'bogus': 1}, 'frames': []})),
        b'R' + msgpack.packb({'header': {}, 'frames': [['u', 0]]}),
        b'R' + msgpack.packb({'header': {}, 'frames': [['x', 0, None]]}),
        b'R' + msgpack.packb({'header': {'config': 5}, 'frames': []}),
    ])
    def test_corrupt_body(self, tmp_path, body):
        """测试文件头正确但内容损坏"""
        path = tmp_path / 'corrupt.replay'
        path.write_bytes(MAGIC + body)

        with pytest.raises(ValueError):
            ReplayRecorder.load(str(path))
        assert main(['replay', str(path)]) == 2

    def test_stats(self):
        """测试录制统计"""
        recorder = self.record_game(ticks=20)
        stats = recorder.get_stats()

        assert stats['seed'] == 11
        assert stats['frame_count'] == len(recorder.frames)
        assert stats['update_count'] == stats['frame_count'] - 3


# ==================== 命令行测试 ====================

class TestCli:
    """命令行测试"""

    def test_simulate_and_replay(self, tmp_path, capsys):
        """测试模拟录制后回放校验"""
        path = str(tmp_path / 'cli.replay')

        assert main(['simulate', '--seed', '3', '--ticks', '200', '--record', path]) == 0
        out = capsys.readouterr().out
        assert 'Seed:   3' in out
        assert 'Replay saved' in out

        assert main(['replay', path]) == 0
        assert 'Match:  True' in capsys.readouterr().out

    def test_replay_missing_file(self, tmp_path):
        """测试回放文件不存在"""
        assert main(['replay', str(tmp_path / 'missing.replay')]) == 2

    def test_simulate_bad_config(self, tmp_path):
        """测试配置文件无法加载"""
        assert main(['simulate', '--config', str(tmp_path / 'missing.json')]) == 2

    def test_scores(self, tmp_path, capsys):
        """测试打印排行榜"""
        path = tmp_path / 'scores.json'

        assert main(['scores', '--file', str(path)]) == 0
        assert 'No high scores yet' in capsys.readouterr().out

        HighScoreTable(path).record('ace', 900, 4)
        assert main(['scores', '--file', str(path)]) == 0
        assert 'ACE' in capsys.readouterr().out
