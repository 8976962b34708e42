from enum import Enum
from typing import NamedTuple
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


# Darwin reports really high hard limits that lead to OverflowErrors, so we
# never go above these.
REASONABLE_LIMITS: dict[LimitType, int] = {
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit towards the hard limit, returning the new
	soft limit or `False` if it could not be changed."""
	lm = limit(scope)
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	try:
		hard = lm.hard if lm.hard != resource.RLIM_INFINITY else None
		target = lm.soft if hard is None else int(lm.soft + ratio * (hard - lm.soft))
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if maximum:
			target = max(lm.soft, min(maximum, target))
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except (ValueError, OSError):
		return False


# EOF
