import enum
import json
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

# ===================== Tunable parameters ===================== #
# -- level generation -- #
DEFAULT_NUM_COLORS = 4
DEFAULT_SLOTS_PER_BOTTLE = 4
DEFAULT_EMPTY_BOTTLES = 2
MAX_COLORS = 10             # difficulty cap for colors per level
MAX_SLOTS = 10              # difficulty cap for bottle height
SPECIAL_EVERY = 5           # every Nth level hides everything below the top run
RANDOM_SEED = None          # set to an int to reproduce a run, e.g. 42

# -- power-up -- #
MAX_EXTRA_BOTTLES = 2       # single-slot glasses a player may add per level
EXTRA_BOTTLE_CAPACITY = 1

# -- save file -- #
SAVE_PATH = "liquid_sort_save.json"

# Fixed palette; a level takes the first num_colors entries
PALETTE = [
    "#FF6B6B",  # coral
    "#4ECDC4",  # turquoise
    "#45B7D1",  # sky blue
    "#FFEAA7",  # cream
    "#DDA0DD",  # plum
    "#6A0DAD",  # purple
    "#98D8C8",  # mint
    "#85C1E9",  # light blue
    "#F8B500",  # amber
    "#58D68D",  # green
    "#D35400",  # pumpkin
]


class SaveError(ValueError):
    """A persisted state is malformed or breaks a bottle invariant."""


# ===================== Colors and bottles ===================== #
@dataclass(frozen=True)
class Color:
    code: str  # e.g. "#FF6B6B"


class DisplayMode(enum.Enum):
    NORMAL = "normal"
    HIDDEN_TOP_RUN = "hidden_top_run"


@dataclass
class Bottle:
    capacity: int
    colors: List[Color] = field(default_factory=list)  # bottom first; last item is the top
    display_mode: DisplayMode = DisplayMode.NORMAL
    glass: bool = False  # power-up bottle

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError(f"Bottle capacity must be positive, got {self.capacity}")
        if len(self.colors) > self.capacity:
            raise ValueError(
                f"Bottle holds {len(self.colors)} segments but capacity is {self.capacity}"
            )

    # ---------- queries ---------- #
    def is_empty(self) -> bool:
        return len(self.colors) == 0

    def is_full(self) -> bool:
        return len(self.colors) >= self.capacity

    def free_space(self) -> int:
        return self.capacity - len(self.colors)

    def top_color(self) -> Optional[Color]:
        return self.colors[-1] if self.colors else None

    def top_run_length(self) -> int:
        # size of the same-colored block at the top (0 when empty)
        top = self.top_color()
        if top is None:
            return 0
        size = 0
        for color in reversed(self.colors):
            if color != top:
                break
            size += 1
        return size

    def can_receive(self, color: Color) -> bool:
        if self.is_full():
            return False
        if self.is_empty():
            return True
        return self.top_color() == color

    def is_complete(self) -> bool:
        # full and a single color; an empty bottle is never complete
        if len(self.colors) != self.capacity:
            return False
        first = self.colors[0]
        return all(c == first for c in self.colors)

    def visible_colors(self) -> List[Optional[Color]]:
        """Stack as a view should draw it, bottom first. Hidden segments are None."""
        if self.display_mode is DisplayMode.NORMAL:
            return list(self.colors)
        shown = self.top_run_length()
        hidden = len(self.colors) - shown
        return [None] * hidden + self.colors[hidden:]

    # ---------- mutators ---------- #
    def push(self, color: Color) -> bool:
        if not self.can_receive(color):
            return False
        self.colors.append(color)
        return True

    def pop_top(self) -> Optional[Color]:
        if not self.colors:
            return None
        return self.colors.pop()

    # ---------- persistence ---------- #
    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity": self.capacity,
            "colors": [c.code for c in self.colors],
            "display_mode": self.display_mode.value,
            "glass": self.glass,
        }

    @classmethod
    def from_dict(cls, rec: Dict[str, Any]) -> "Bottle":
        try:
            capacity = rec["capacity"]
            codes = rec["colors"]
            mode = DisplayMode(rec.get("display_mode", DisplayMode.NORMAL.value))
            glass = rec.get("glass", False)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise SaveError(f"Malformed bottle record {rec!r}: {e}") from e
        if not isinstance(capacity, int) or isinstance(capacity, bool):
            raise SaveError(f"Bottle capacity must be an integer, got {capacity!r}")
        if not isinstance(codes, list) or not all(isinstance(c, str) for c in codes):
            raise SaveError(f"Bottle colors must be a list of strings, got {codes!r}")
        if not isinstance(glass, bool):
            raise SaveError(f"Bottle glass flag must be a boolean, got {glass!r}")
        try:
            return cls(capacity=capacity, colors=[Color(c) for c in codes],
                       display_mode=mode, glass=glass)
        except ValueError as e:
            # overfull or non-positive capacity: reject, never truncate
            raise SaveError(str(e)) from e


@dataclass
class GameState:
    bottles: List[Bottle]
    move_count: int = 0
    extra_bottles_used: int = 0
    special: bool = False  # generated in hidden-top-run mode

    def segment_count(self) -> int:
        return sum(len(b.colors) for b in self.bottles)

    def clone(self) -> "GameState":
        return GameState(
            bottles=[Bottle(b.capacity, b.colors[:], b.display_mode, b.glass) for b in self.bottles],
            move_count=self.move_count,
            extra_bottles_used=self.extra_bottles_used,
            special=self.special,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bottles": [b.to_dict() for b in self.bottles],
            "move_count": self.move_count,
            "extra_bottles_used": self.extra_bottles_used,
            "special": self.special,
        }

    @classmethod
    def from_dict(cls, rec: Dict[str, Any]) -> "GameState":
        if not isinstance(rec, dict) or not isinstance(rec.get("bottles"), list):
            raise SaveError("State record has no bottle list")
        bottles = [Bottle.from_dict(b) for b in rec["bottles"]]
        move_count = rec.get("move_count", 0)
        extra = rec.get("extra_bottles_used", 0)
        special = rec.get("special", False)
        if not isinstance(move_count, int) or isinstance(move_count, bool) or move_count < 0:
            raise SaveError(f"Invalid move count {move_count!r}")
        if (not isinstance(extra, int) or isinstance(extra, bool)
                or not 0 <= extra <= MAX_EXTRA_BOTTLES):
            raise SaveError(f"Invalid extra bottle count {extra!r}")
        if not isinstance(special, bool):
            raise SaveError(f"Invalid special flag {special!r}")
        return cls(bottles=bottles, move_count=move_count,
                   extra_bottles_used=extra, special=special)


# ===================== Pouring ===================== #
@dataclass(frozen=True)
class PourInfo:
    allowed: bool
    color: Optional[Color] = None
    units: int = 0


@dataclass(frozen=True)
class PourResult:
    success: bool
    units_poured: int = 0


REJECTED = PourInfo(False)


def evaluate_pour(bottles: Sequence[Bottle], source: int, target: int) -> PourInfo:
    """Check whether bottle ``source`` may pour into bottle ``target`` without mutating either.

    Bottles are addressed by index. Returns how many units would move and of which color.
    """
    if not (0 <= source < len(bottles) and 0 <= target < len(bottles)):
        return REJECTED
    if source == target:
        return REJECTED
    a, b = bottles[source], bottles[target]
    if a.is_empty():
        return REJECTED
    if b.is_full():
        return REJECTED
    color = a.top_color()
    if color is None:
        return REJECTED
    if not b.can_receive(color):
        return REJECTED
    return PourInfo(True, color, min(a.top_run_length(), b.free_space()))


def apply_pour(bottles: Sequence[Bottle], source: int, target: int) -> PourResult:
    """Move the top run from ``source`` to ``target``. Illegal pours change nothing."""
    info = evaluate_pour(bottles, source, target)
    if not info.allowed:
        return PourResult(False, 0)
    a, b = bottles[source], bottles[target]
    for _ in range(info.units):
        b.push(a.pop_top())
    return PourResult(True, info.units)


# ===================== Terminal states ===================== #
def check_win(bottles: Sequence[Bottle]) -> bool:
    # empty bottles are fine in a winning layout
    for b in bottles:
        if not b.is_empty() and not b.is_complete():
            return False
    return True


def is_stuck(bottles: Sequence[Bottle]) -> bool:
    n = len(bottles)
    for i in range(n):
        for j in range(n):
            if i != j and evaluate_pour(bottles, i, j).allowed:
                return False
    return True


# ===================== Level generation ===================== #
@dataclass(frozen=True)
class LevelOptions:
    num_colors: int = DEFAULT_NUM_COLORS
    slots_per_bottle: int = DEFAULT_SLOTS_PER_BOTTLE
    empty_bottles: int = DEFAULT_EMPTY_BOTTLES


DEFAULT_OPTIONS = LevelOptions()


def generate_level(options: Optional[LevelOptions] = None, rng=None) -> GameState:
    """Build a shuffled layout: every color fills exactly one bottle's worth of slots.

    The layout is structurally sortable (color counts match bottle capacity) but is
    not checked for solvability within any number of moves.
    """
    opts = options or DEFAULT_OPTIONS
    rng = rng or random
    if not 1 <= opts.num_colors <= len(PALETTE):
        raise ValueError(
            f"num_colors must be between 1 and {len(PALETTE)}, got {opts.num_colors}"
        )
    if opts.slots_per_bottle <= 0:
        raise ValueError(f"slots_per_bottle must be positive, got {opts.slots_per_bottle}")
    if opts.empty_bottles < 0:
        raise ValueError(f"empty_bottles cannot be negative, got {opts.empty_bottles}")

    colors = [Color(code) for code in PALETTE[:opts.num_colors]]
    pool: List[Color] = []
    for color in colors:
        pool.extend([color] * opts.slots_per_bottle)
    rng.shuffle(pool)  # Fisher-Yates

    k = opts.slots_per_bottle
    bottles = [Bottle(capacity=k, colors=pool[i * k:(i + 1) * k]) for i in range(opts.num_colors)]
    for _ in range(opts.empty_bottles):
        bottles.append(Bottle(capacity=k))
    return GameState(bottles=bottles)


def level_options(level: int) -> LevelOptions:
    # more colors every 3 levels, taller bottles every 5, both capped
    return LevelOptions(
        num_colors=min(DEFAULT_NUM_COLORS + level // 3, MAX_COLORS),
        slots_per_bottle=min(DEFAULT_SLOTS_PER_BOTTLE + level // 5, MAX_SLOTS),
        empty_bottles=DEFAULT_EMPTY_BOTTLES,
    )


def is_special_level(level: int) -> bool:
    return level % SPECIAL_EVERY == 0


def new_level(level: int, rng=None) -> GameState:
    state = generate_level(level_options(level), rng)
    if is_special_level(level):
        state.special = True
        for b in state.bottles:
            b.display_mode = DisplayMode.HIDDEN_TOP_RUN
    return state


def add_extra_bottle(state: GameState) -> bool:
    """Append an empty single-slot glass. Adds capacity only, never segments."""
    if state.extra_bottles_used >= MAX_EXTRA_BOTTLES:
        return False
    state.extra_bottles_used += 1
    state.bottles.append(Bottle(capacity=EXTRA_BOTTLE_CAPACITY, glass=True))
    return True


# ===================== Save file ===================== #
def save_game(path: str, level: int, state: GameState) -> bool:
    data = {"level": level, "state": state.to_dict()}
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
    except OSError as e:
        print(f"[WARN] Could not write save file {path}: {e}")
        return False
    return True


def load_game(path: str) -> Optional[Tuple[int, GameState]]:
    """Read ``(level, state)`` from a save file; None when missing or invalid."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:  # ValueError covers bad JSON and bad UTF-8
        print(f"[WARN] Could not read save file {path}: {e}")
        return None
    try:
        if not isinstance(data, dict):
            raise SaveError("Save record is not an object")
        level = data.get("level", 1)
        if not isinstance(level, int) or isinstance(level, bool) or level < 1:
            raise SaveError(f"Invalid level {level!r}")
        state = GameState.from_dict(data.get("state"))
    except SaveError as e:
        print(f"[WARN] Ignoring invalid save file {path}: {e}")
        return None
    return level, state


# ===================== Game session ===================== #
class Game:
    def __init__(self, level: int = 1, save_path: Optional[str] = None, rng=None,
                 state: Optional[GameState] = None):
        if rng is None and RANDOM_SEED is not None:
            rng = random.Random(RANDOM_SEED)
        self.rng = rng
        self.level = level
        self.save_path = save_path
        self.state = state if state is not None else new_level(level, rng)
        self.selected: Optional[int] = None  # index of the lifted bottle
        self.win = False
        self.stuck = False
        self.message = ""
        self.history: List[GameState] = []   # snapshots taken before each pour, for undo
        self.initial_snapshot = self.state.clone()
        self._refresh_flags()

    @classmethod
    def load(cls, save_path: str = SAVE_PATH, rng=None) -> "Game":
        """Resume from ``save_path``, or start level 1 when there is no usable save."""
        saved = load_game(save_path)
        if saved is None:
            game = cls(level=1, save_path=save_path, rng=rng)
            game.save()
            return game
        level, state = saved
        return cls(level=level, save_path=save_path, rng=rng, state=state)

    @property
    def bottles(self) -> List[Bottle]:
        return self.state.bottles

    # ----------- helpers ----------- #
    def _refresh_flags(self):
        self.win = check_win(self.bottles)
        # a won board is never stuck
        self.stuck = not self.win and is_stuck(self.bottles)
        if self.win:
            self.message = f"You win in {self.state.move_count} moves!"
        elif self.stuck:
            self.message = "No moves left!"

    def _start(self, state: GameState):
        self.state = state
        self.selected = None
        self.history = []
        self.initial_snapshot = state.clone()
        self.message = f"Level {self.level}"
        self._refresh_flags()
        self.save()

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "state": self.state.to_dict()}

    def save(self) -> bool:
        if self.save_path is None:
            return False
        return save_game(self.save_path, self.level, self.state)

    # ----------- level flow ----------- #
    def restart(self):
        """Generate a fresh layout for the current level."""
        self._start(new_level(self.level, self.rng))

    def next_level(self):
        self.level += 1
        self._start(new_level(self.level, self.rng))

    def reset_to_initial(self):
        """Return to the layout this level started with."""
        self.state = self.initial_snapshot.clone()
        self.selected = None
        self.history = []
        self.message = "Back to start."
        self._refresh_flags()
        self.save()

    def undo(self):
        """Take back the last pour. Glasses added since then stay on the board."""
        if not self.history:
            self.message = "Nothing to undo."
            return
        restored = self.history.pop()
        # glasses appended after the snapshot are still empty: no pour has happened since
        restored.bottles.extend(self.state.bottles[len(restored.bottles):])
        restored.extra_bottles_used = self.state.extra_bottles_used
        self.state = restored
        self.selected = None
        self.message = "Undone."
        self._refresh_flags()
        self.save()

    def add_extra_bottle(self) -> bool:
        if self.win:
            return False
        if not add_extra_bottle(self.state):
            self.message = "No glasses left."
            return False
        self.selected = None
        remaining = MAX_EXTRA_BOTTLES - self.state.extra_bottles_used
        self.message = f"Glass added ({remaining} left)."
        self._refresh_flags()
        self.save()
        return True

    # ----------- input ----------- #
    def click_bottle(self, idx: int) -> Optional[PourResult]:
        """Select a source bottle, or pour the selected one into ``idx``."""
        if self.win or not 0 <= idx < len(self.bottles):
            return None
        b = self.bottles[idx]

        if self.selected is None:
            if not b.is_empty():
                self.selected = idx
            return None

        if self.selected == idx:
            self.selected = None
            return None

        snapshot = self.state.clone()
        result = apply_pour(self.bottles, self.selected, idx)
        if not result.success:
            # the clicked bottle becomes the new source if it has anything to pour
            self.selected = idx if not b.is_empty() else None
            return result

        self.history.append(snapshot)
        self.state.move_count += 1
        self.selected = None
        self.message = f"Moves: {self.state.move_count}"
        self._refresh_flags()
        self.save()
        return result
