from gamesearch.models.game import Game
from gamesearch.models.game_document import GameDocument

__all__ = ["Game", "GameDocument"]
