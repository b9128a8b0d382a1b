from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol


class DrawSource(Protocol):
    def draw(self) -> float:
        """
        Return the next float in [0, 1).
        """
        ...


@dataclass(frozen=True, slots=True)
class CrashPointSampler:
    """
    Crash multiplier distribution.

    Draw accounting is fixed per branch so seeded runs replay exactly:
      - heavy tail (u < tail_probability): two draws, Pareto(scale, shape)
      - body: one draw, 1 + Exp(rate) via inverse transform
    Results are rounded to 2dp, then floored at 1.
    """

    tail_probability: float = 0.02
    tail_scale: float = 10.0
    tail_shape: float = 1.6
    tail_draw_scale: float = 0.999
    body_rate: float = 0.9
    min_u: float = 1e-9

    def sample(self, rng: DrawSource) -> float:
        u = rng.draw()

        if u < self.tail_probability:
            u2 = rng.draw() * self.tail_draw_scale
            x = self.tail_scale * (1.0 - u2) ** (-1.0 / self.tail_shape)
        else:
            x = 1.0 + (-math.log(max(u, self.min_u))) / self.body_rate

        return max(1.0, round(x, 2))
