"""
BIM Defender simulation core
"""

from .config import Config
from .engine import GameEngine
from .entities import Boss, Enemy, EnemyType, Player, PowerUp, PowerUpType, Projectile
from .events import EventType, GameEvent
from .input import Intents, IntentFlags
from .rng import DeterministicRNG
from .scores import HighScoreTable
from .state import GameState, StateSnapshot
from .waves import WaveSpawner

__all__ = [
    'Config',
    'GameEngine',
    'Boss', 'Enemy', 'EnemyType', 'Player', 'PowerUp', 'PowerUpType', 'Projectile',
    'EventType', 'GameEvent',
    'Intents', 'IntentFlags',
    'DeterministicRNG',
    'HighScoreTable',
    'GameState', 'StateSnapshot',
    'WaveSpawner',
]
