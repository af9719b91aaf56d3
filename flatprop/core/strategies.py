"""Weight update strategies for flatprop.

Every strategy answers one question per weight and iteration: by how much
should ``weights[index]`` change? Gradients are loss derivatives
(``dE/dw``), so a strategy moves each weight against its gradient.

This module holds the Resilient Propagation (RPROP) family. Each variant
keeps an adaptive step size ("update value") per weight that grows while
the gradient keeps its sign and shrinks when the sign flips.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Protocol, Type

import numpy as np

from .errors import ConfigurationError
from .types import Array

POSITIVE_ETA = 1.2
NEGATIVE_ETA = 0.5
DELTA_MIN = 1e-6
DEFAULT_INITIAL_UPDATE = 0.1
DEFAULT_MAX_STEP = 50.0
DEFAULT_ZERO_TOLERANCE = 1e-17


class WeightUpdateStrategy(Protocol):
    """Protocol implemented by RPROP variants and SGD optimizers."""

    def init(self, weight_count: int) -> None:
        """Allocate per-weight state for ``weight_count`` weights."""

    def begin_iteration(self, error: float, last_error: float) -> None:
        """Observe the current batch error before any weight is updated."""

    def update_weight(
        self,
        gradients: Array,
        last_gradient: Array,
        index: int,
        dropout_rate: float = 0.0,
    ) -> float:
        """Return the change to apply to ``weights[index]``."""


class RPROPType(str, Enum):
    """Tags selecting an RPROP variant."""

    RPROPp = "RPROPp"
    """RPROP+ : the classic algorithm, with weight back tracking."""

    RPROPm = "RPROPm"
    """RPROP- : no weight back tracking."""

    iRPROPp = "iRPROPp"
    """iRPROP+ : back tracks only when the error got worse."""

    iRPROPm = "iRPROPm"
    """iRPROP- : forgets the last gradient after a sign change."""

    ARPROP = "ARPROP"
    """ARPROP : non-linear Jacobi RPROP."""

    @classmethod
    def parse(cls, tag: "RPROPType | str") -> "RPROPType":
        try:
            return cls(tag)
        except ValueError as exc:
            available = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"Unknown RPROP type: {tag!r}. Available types: {available}"
            ) from exc


class ResilientUpdate:
    """State and step-size rules shared by the RPROP variants.

    Parameters
    ----------
    initial_update:
        Step size every weight starts with.
    max_step:
        Upper bound for a step size. The lower bound is ``DELTA_MIN``.
    zero_tolerance:
        Products or gradients whose magnitude is below this value count as
        zero when taking signs.
    """

    rprop_type: RPROPType

    def __init__(
        self,
        initial_update: float = DEFAULT_INITIAL_UPDATE,
        max_step: float = DEFAULT_MAX_STEP,
        zero_tolerance: float = DEFAULT_ZERO_TOLERANCE,
    ) -> None:
        if max_step < DELTA_MIN:
            raise ConfigurationError(f"max_step must be at least {DELTA_MIN}")
        if not DELTA_MIN <= initial_update <= max_step:
            raise ConfigurationError(
                f"initial_update must lie in [{DELTA_MIN}, {max_step}], got {initial_update}"
            )
        if zero_tolerance < 0:
            raise ConfigurationError("zero_tolerance must be non-negative")
        self.initial_update = float(initial_update)
        self.max_step = float(max_step)
        self.zero_tolerance = float(zero_tolerance)
        self.update_values: Array = np.zeros(0)
        self.last_weight_change: Array = np.zeros(0)
        self.error = float("inf")
        self.last_error = float("inf")

    def init(self, weight_count: int) -> None:
        self.update_values = np.full(weight_count, self.initial_update)
        self.last_weight_change = np.zeros(weight_count)

    def begin_iteration(self, error: float, last_error: float) -> None:
        self.error = error
        self.last_error = last_error

    def update_weight(
        self,
        gradients: Array,
        last_gradient: Array,
        index: int,
        dropout_rate: float = 0.0,
    ) -> float:
        if dropout_rate > 0:
            return 0.0
        weight_change = float(self._update(gradients, last_gradient, index))
        self.last_weight_change[index] = weight_change
        return weight_change

    @property
    def error_increased(self) -> bool:
        return self.error > self.last_error

    def adopt(self, other: "ResilientUpdate") -> None:
        """Continue from the per-weight state of ``other``."""

        self.update_values = other.update_values
        self.last_weight_change = other.last_weight_change
        self.error = other.error
        self.last_error = other.last_error

    # ------------------------------------------------------------------
    # Helpers

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        raise NotImplementedError

    def _sign(self, value: float) -> int:
        if abs(value) < self.zero_tolerance:
            return 0
        return 1 if value > 0 else -1

    def _grow(self, index: int) -> float:
        step = min(self.update_values[index] * POSITIVE_ETA, self.max_step)
        self.update_values[index] = step
        return step

    def _shrink(self, index: int) -> float:
        step = max(self.update_values[index] * NEGATIVE_ETA, DELTA_MIN)
        self.update_values[index] = step
        return step

    def _plus_rule(self, gradients: Array, last_gradient: Array, index: int, backtrack: bool) -> float:
        gradient = gradients[index]
        change = self._sign(gradient * last_gradient[index])
        if change > 0:
            step = self._grow(index)
            last_gradient[index] = gradient
            return -self._sign(gradient) * step
        if change < 0:
            # the last step jumped over a minimum
            self._shrink(index)
            last_gradient[index] = 0.0
            return -self.last_weight_change[index] if backtrack else 0.0
        last_gradient[index] = gradient
        return -self._sign(gradient) * self.update_values[index]

    def _minus_rule(self, gradients: Array, last_gradient: Array, index: int, forget_on_reversal: bool) -> float:
        gradient = gradients[index]
        change = self._sign(gradient * last_gradient[index])
        if change > 0:
            step = self._grow(index)
        elif change < 0:
            step = self._shrink(index)
            if forget_on_reversal:
                last_gradient[index] = 0.0
                return -self._sign(gradient) * step
        else:
            step = self.update_values[index]
        last_gradient[index] = gradient
        return -self._sign(gradient) * step


class RPROPPlus(ResilientUpdate):
    """RPROP+ : undo the previous step whenever the gradient changes sign."""

    rprop_type = RPROPType.RPROPp

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        return self._plus_rule(gradients, last_gradient, index, backtrack=True)


class RPROPMinus(ResilientUpdate):
    """RPROP- : no back tracking, the step size alone adapts."""

    rprop_type = RPROPType.RPROPm

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        return self._minus_rule(gradients, last_gradient, index, forget_on_reversal=False)


class IRPROPPlus(ResilientUpdate):
    """iRPROP+ : back track only if the batch error increased."""

    rprop_type = RPROPType.iRPROPp

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        return self._plus_rule(
            gradients, last_gradient, index, backtrack=self.error_increased
        )


class IRPROPMinus(ResilientUpdate):
    """iRPROP- : like RPROP- but forget the last gradient after a sign change."""

    rprop_type = RPROPType.iRPROPm

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        return self._minus_rule(gradients, last_gradient, index, forget_on_reversal=True)


class ARPROP(ResilientUpdate):
    """ARPROP : RPROP+ with damped back tracking when the error increases.

    While the error keeps increasing the weight moves back against its last
    change by ``step / (2 q)``, where ``q`` counts the consecutive worsening
    iterations. ``q`` returns to 1 once the error improves. The damped move
    follows the last change rather than the gradient, so while the error
    increases a change may point along the gradient.
    """

    rprop_type = RPROPType.ARPROP

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.q = 1
        self._damping = 1

    def begin_iteration(self, error: float, last_error: float) -> None:
        super().begin_iteration(error, last_error)
        if self.error_increased:
            self._damping = self.q
            self.q += 1
        else:
            self.q = 1
            self._damping = 1

    def adopt(self, other: ResilientUpdate) -> None:
        super().adopt(other)
        if isinstance(other, ARPROP):
            self.q = other.q
            self._damping = other._damping

    def _update(self, gradients: Array, last_gradient: Array, index: int) -> float:
        previous = self.last_weight_change[index]
        weight_change = self._plus_rule(gradients, last_gradient, index, backtrack=True)
        if self.error_increased:
            step = self.update_values[index]
            weight_change = -self._sign(previous) * step / (2.0 * self._damping)
        return weight_change


_VARIANTS: Dict[RPROPType, Type[ResilientUpdate]] = {
    cls.rprop_type: cls for cls in (RPROPPlus, RPROPMinus, IRPROPPlus, IRPROPMinus, ARPROP)
}


def make_rprop(
    rprop_type: RPROPType | str = RPROPType.RPROPp,
    *,
    initial_update: float = DEFAULT_INITIAL_UPDATE,
    max_step: float = DEFAULT_MAX_STEP,
    zero_tolerance: float = DEFAULT_ZERO_TOLERANCE,
) -> ResilientUpdate:
    """Build the RPROP strategy selected by ``rprop_type``."""

    tag = RPROPType.parse(rprop_type)
    return _VARIANTS[tag](
        initial_update=initial_update,
        max_step=max_step,
        zero_tolerance=zero_tolerance,
    )


__all__ = [
    "ARPROP",
    "DELTA_MIN",
    "DEFAULT_INITIAL_UPDATE",
    "DEFAULT_MAX_STEP",
    "DEFAULT_ZERO_TOLERANCE",
    "IRPROPMinus",
    "IRPROPPlus",
    "NEGATIVE_ETA",
    "POSITIVE_ETA",
    "RPROPMinus",
    "RPROPPlus",
    "RPROPType",
    "ResilientUpdate",
    "WeightUpdateStrategy",
    "make_rprop",
]
