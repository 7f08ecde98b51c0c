from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScoringRules:
    layer_points: int = 100
    bomb_bonus: int = 50
    layers_per_level: int = 5
    celebrate_threshold: int = 5
    base_delay_ms: int = 1200
    delay_step_ms: int = 90
    min_delay_ms: int = 250

    def score_for_layers(self, layers: int, level: int) -> int:
        if layers <= 0:
            return 0
        return layers * self.layer_points * level

    def score_for_removals(self, removed: int) -> int:
        return max(0, removed) * self.bomb_bonus

    def level_for(self, lines_cleared: int) -> int:
        return max(1, lines_cleared // self.layers_per_level + 1)

    def gravity_delay_ms(self, level: int) -> int:
        return max(self.min_delay_ms, self.base_delay_ms - level * self.delay_step_ms)
