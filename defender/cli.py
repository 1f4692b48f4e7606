#!/usr/bin/env python3
"""
Headless command line tools

- simulate: 用自动驾驶输入跑一局，打印统计，可录制回放、记录排行榜
- replay:   校验回放文件的确定性
- scores:   打印排行榜
"""

import argparse
import logging
import sys
from collections import Counter
from typing import List, Optional

from .config import Config
from .engine import GameEngine
from .input import Intents
from .replay import ReplayPlayer, ReplayRecorder
from .scores import HighScoreTable
from .state import GameState

logger = logging.getLogger(__name__)


def autopilot_intents(engine: GameEngine) -> Intents:
    """
    简单的确定性自动驾驶

    始终开火，并把飞船移向 Boss 或最靠下的存活敌人。
    """
    player = engine.player
    target_x = None

    if engine.boss is not None and engine.boss.is_alive:
        target_x = engine.boss.center[0]
    else:
        alive = [e for e in engine.enemies if e.alive]
        if alive:
            lowest = max(alive, key=lambda e: e.bottom)
            target_x = lowest.center[0]

    if target_x is None:
        return Intents(fire=True)

    offset = target_x - player.center[0]
    return Intents(
        move_left=offset < -player.speed,
        move_right=offset > player.speed,
        fire=True,
    )


def cmd_simulate(args) -> int:
    config = Config()
    if args.config and not config.load_from_file(args.config):
        print(f"Error: could not load config {args.config}")
        return 2

    scores = HighScoreTable(args.scores, config.scores.max_entries) if args.scores else None
    engine = GameEngine(config=config, seed=args.seed, scores=scores)
    recorder = ReplayRecorder(seed=args.seed, config=config) if args.record else None

    counts = Counter(event.type.value for event in engine.start())
    if recorder:
        recorder.record_start()

    for _ in range(args.ticks):
        if engine.state == GameState.GAME_OVER:
            break
        intents = autopilot_intents(engine)
        counts.update(event.type.value for event in engine.update(intents))
        if recorder:
            recorder.record_update(intents)

    snapshot = engine.snapshot()

    print("=" * 50)
    print(f"Seed:   {args.seed}")
    print(f"Ticks:  {snapshot.tick}")
    print(f"State:  {snapshot.state}")
    print(f"Score:  {snapshot.score}")
    print(f"Wave:   {snapshot.wave}")
    print(f"Lives:  {snapshot.player['lives']}")
    print(f"Hash:   {snapshot.compute_hash()}")
    print("-" * 50)
    for name, count in sorted(counts.items()):
        print(f"  {name:<20} {count}")

    if engine.state == GameState.GAME_OVER and engine.qualifies_for_high_score:
        if args.initials and engine.submit_high_score(args.initials):
            print(f"High score recorded for {args.initials.upper()[:3]}")
        else:
            print("Qualifying score (pass --initials to record it)")

    if recorder:
        recorder.finish(snapshot)
        recorder.save(args.record)
        print(f"Replay saved: {args.record}")

    return 0


def cmd_replay(args) -> int:
    try:
        player = ReplayPlayer.from_file(args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 2

    ok = player.verify()
    stats = player.recorder.get_stats()
    print(f"Frames: {stats['frame_count']} (updates: {stats['update_count']})")
    print(f"Score:  {player.last_snapshot.score} / recorded {stats['final_score']}")
    print(f"Match:  {ok}")
    return 0 if ok else 1


def cmd_scores(args) -> int:
    table = HighScoreTable(args.file)
    entries = table.entries
    if not entries:
        print("No high scores yet")
        return 0

    for rank, entry in enumerate(entries, start=1):
        print(f"{rank}. {entry.initials}  {entry.score:>8}  wave {entry.wave}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='bim-defender', description='BIM Defender simulation tools')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    simulate = sub.add_parser('simulate', help='Run a headless game with the autopilot')
    simulate.add_argument('--seed', type=int, default=1, help='RNG seed')
    simulate.add_argument('--ticks', type=int, default=3600, help='Maximum ticks to run')
    simulate.add_argument('--config', help='JSON config file')
    simulate.add_argument('--record', help='Write a replay file')
    simulate.add_argument('--scores', help='High score file')
    simulate.add_argument('--initials', help='Initials for a qualifying score')
    simulate.set_defaults(func=cmd_simulate)

    replay = sub.add_parser('replay', help='Verify a replay file')
    replay.add_argument('file', help='Replay file')
    replay.set_defaults(func=cmd_replay)

    scores = sub.add_parser('scores', help='Show the high score table')
    scores.add_argument('--file', default='highscores.json', help='High score file')
    scores.set_defaults(func=cmd_scores)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """命令行入口"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
