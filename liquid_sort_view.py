import sys
from typing import List, Optional

import pygame

from liquid_sort import MAX_EXTRA_BOTTLES, SAVE_PATH, Bottle, Game

# ===================== Tunable parameters ===================== #
# -- window (fixed size) -- #
WINDOW_W, WINDOW_H = 1000, 860
FPS = 60

# -- uniform scale for the bottle outline -- #
SCALE = 0.75

BASE_BOTTLE_WIDTH = 90
BASE_BOTTLE_HEIGHT = 360
BASE_INNER_PADDING = 5
BASE_SLOT_GAP = 4

BOTTLE_WIDTH = int(round(BASE_BOTTLE_WIDTH * SCALE))
BOTTLE_HEIGHT = int(round(BASE_BOTTLE_HEIGHT * SCALE))
INNER_PADDING = max(1, int(round(BASE_INNER_PADDING * SCALE)))
SLOT_GAP = max(1, int(round(BASE_SLOT_GAP * SCALE)))

# layout: at most 8 per row, two rows when needed
MAX_PER_ROW = 8
ROW_VGAP = int(round(80 * SCALE))
H_GAP = int(round(22 * SCALE))
LIFT_OFFSET = -int(round(18 * SCALE))

# ===================== Colors and styles ===================== #
BG_COLOR = (30, 32, 40)
BORDER_COLOR = (204, 204, 204)
TEXT_COLOR = (240, 240, 240)
SUBTLE_TEXT = (170, 170, 170)
SPECIAL_TEXT = (255, 68, 255)
LIFTED_TINT = (60, 64, 90)
LOCKED_TINT = (40, 80, 50)
HIDDEN_COLOR = (90, 90, 100)
PANEL_BG = (20, 20, 24)
PANEL_BORDER = (110, 110, 120)
BTN_BG = (51, 51, 51)
BTN_BORDER = (120, 140, 200)
BTN_DISABLED = (85, 85, 85)
WIN_TEXT = (255, 215, 0)
STUCK_TEXT = (255, 107, 107)
INFO_BG = (44, 46, 56)


class View:
    def __init__(self, game: Game):
        pygame.init()
        self.game = game
        self.screen = pygame.display.set_mode((WINDOW_W, WINDOW_H))
        pygame.display.set_caption("Liquid Sort")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont(None, 24)
        self.big_font = pygame.font.SysFont(None, 36)

        self.bottle_w = BOTTLE_WIDTH
        self.bottle_h = BOTTLE_HEIGHT
        self.layer_gap = SLOT_GAP
        self.ground_y = WINDOW_H - 130

        # the stuck panel can be closed to keep looking for a move
        self.stuck_dismissed = False

        # clickable areas, refreshed on every frame
        self.btn_next_rect: Optional[pygame.Rect] = None
        self.btn_exit_rect: Optional[pygame.Rect] = None
        self.btn_close_rect: Optional[pygame.Rect] = None
        self.btn_restart_rect: Optional[pygame.Rect] = None
        self.btn_reset_rect: Optional[pygame.Rect] = None
        self.btn_undo_rect: Optional[pygame.Rect] = None
        self.btn_glass_rect: Optional[pygame.Rect] = None

    # ---------- layout: up to 8 per row, odd count puts the extra one in the lower row ---------- #
    def _compute_grid_layout(self):
        """Return (positions, grid_rect) for the current bottle list."""
        n = len(self.game.bottles)
        tile_w = self.bottle_w
        hgap = H_GAP

        positions = []
        if n <= 0:
            return positions, pygame.Rect(0, 0, 0, 0)

        if n <= MAX_PER_ROW:
            counts = [n]
        else:
            top_cnt = min(MAX_PER_ROW, n // 2)
            counts = [top_cnt, n - top_cnt]

        top_y = self.ground_y - self.bottle_h * len(counts) - ROW_VGAP * (len(counts) - 1)
        if len(counts) == 1:
            # single row sits halfway between where two rows would go
            top_y = self.ground_y - self.bottle_h - (self.bottle_h + ROW_VGAP) // 2

        idx = 0
        left_list, right_list = [], []
        for r, cnt in enumerate(counts):
            row_w = cnt * tile_w + (cnt - 1) * hgap
            start_x = (WINDOW_W - row_w) // 2
            y_slot = top_y + r * (self.bottle_h + ROW_VGAP)
            for c in range(cnt):
                positions.append({"idx": idx, "x": start_x + c * (tile_w + hgap), "y": y_slot})
                idx += 1
            left_list.append(start_x)
            right_list.append(start_x + row_w)

        height = self.bottle_h * len(counts) + ROW_VGAP * (len(counts) - 1)
        grid_rect = pygame.Rect(min(left_list), top_y, max(right_list) - min(left_list), height)
        return positions, grid_rect

    def _slot_height(self) -> int:
        # every bottle shares the slot height of the tallest one
        tallest = max((b.capacity for b in self.game.bottles), default=1)
        usable_h = self.bottle_h - 2 * INNER_PADDING - self.layer_gap * (tallest - 1)
        return max(1, usable_h // tallest)

    # ---------- main loop ---------- #
    def run(self):
        while True:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    pygame.quit(); sys.exit()
                if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    self._handle_click(event.pos)

            self._draw()
            self.clock.tick(FPS)

    def _handle_click(self, pos):
        game = self.game

        if game.win:
            if self.btn_next_rect and self.btn_next_rect.collidepoint(pos):
                game.next_level(); self.stuck_dismissed = False; return
            if self.btn_exit_rect and self.btn_exit_rect.collidepoint(pos):
                pygame.quit(); sys.exit()
            return

        if game.stuck and not self.stuck_dismissed:
            if self.btn_restart_rect and self.btn_restart_rect.collidepoint(pos):
                game.restart(); return
            if self.btn_close_rect and self.btn_close_rect.collidepoint(pos):
                self.stuck_dismissed = True
            return

        if self.btn_undo_rect and self.btn_undo_rect.collidepoint(pos):
            game.undo(); self.stuck_dismissed = False; return
        if self.btn_reset_rect and self.btn_reset_rect.collidepoint(pos):
            game.reset_to_initial(); self.stuck_dismissed = False; return
        if self.btn_restart_rect and self.btn_restart_rect.collidepoint(pos):
            game.restart(); self.stuck_dismissed = False; return
        if self.btn_glass_rect and self.btn_glass_rect.collidepoint(pos):
            game.add_extra_bottle(); self.stuck_dismissed = False; return

        idx = self._hit_test_bottle(pos)
        if idx is not None:
            game.click_bottle(idx)

    def _hit_test_bottle(self, pos) -> Optional[int]:
        positions, _ = self._compute_grid_layout()
        for d in positions:
            rect = pygame.Rect(d["x"], d["y"] + LIFT_OFFSET, self.bottle_w, self.bottle_h - LIFT_OFFSET)
            if rect.collidepoint(pos):
                return d["idx"]
        return None

    # ---------- drawing ---------- #
    def _draw_liquid_layers(self, x: int, bottom: int, bottle: Bottle, slot_h: int):
        draw_w = max(1, self.bottle_w - 2 * INNER_PADDING)
        base_x = x + INNER_PADDING

        current_bottom = bottom - INNER_PADDING
        for color in bottle.visible_colors():  # bottom first
            top_y = current_bottom - slot_h
            fill = HIDDEN_COLOR if color is None else pygame.Color(color.code)
            pygame.draw.rect(self.screen, fill, pygame.Rect(base_x, top_y, draw_w, slot_h), border_radius=4)
            if color is None:
                mark = self.font.render("?", True, TEXT_COLOR)
                self.screen.blit(mark, (base_x + draw_w // 2 - mark.get_width() // 2,
                                        top_y + slot_h // 2 - mark.get_height() // 2))
            current_bottom = top_y - self.layer_gap

    def _draw_bottle(self, idx: int, bottle: Bottle, x: int, y: int, slot_h: int):
        # glasses are as tall as their slots; regular bottles use the full height
        body_h = bottle.capacity * slot_h + (bottle.capacity - 1) * self.layer_gap + 2 * INNER_PADDING
        body_h = min(body_h, self.bottle_h)
        bottom = y + self.bottle_h
        body = pygame.Rect(x, bottom - body_h, self.bottle_w, body_h)

        if self.game.selected == idx:
            pygame.draw.rect(self.screen, LIFTED_TINT, body, border_radius=10)
        elif bottle.is_complete():
            pygame.draw.rect(self.screen, LOCKED_TINT, body, border_radius=10)

        self._draw_liquid_layers(x, bottom, bottle, slot_h)
        pygame.draw.rect(self.screen, BORDER_COLOR, body, width=2, border_radius=10)

        if bottle.is_complete():
            done_text = self.font.render("Ready!", True, (120, 220, 120))
            self.screen.blit(done_text, (x + self.bottle_w // 2 - done_text.get_width() // 2, body.y - 24))

        label = self.font.render(f"{idx + 1}", True, SUBTLE_TEXT)
        self.screen.blit(label, (x + self.bottle_w // 2 - label.get_width() // 2, bottom + 6))

    def _draw_button(self, rect: pygame.Rect, text: str, enabled: bool = True):
        pygame.draw.rect(self.screen, BTN_BG if enabled else BTN_DISABLED, rect, border_radius=10)
        pygame.draw.rect(self.screen, BTN_BORDER, rect, width=2, border_radius=10)
        txt = self.font.render(text, True, TEXT_COLOR if enabled else SUBTLE_TEXT)
        self.screen.blit(txt, (rect.centerx - txt.get_width() // 2, rect.centery - txt.get_height() // 2))

    def _draw_overlay_panel(self, title: str, title_color, subtitle: str, buttons: List[str]) -> List[pygame.Rect]:
        """Centered modal panel; returns the button rects in the given order."""
        overlay = pygame.Surface((WINDOW_W, WINDOW_H), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 204))
        self.screen.blit(overlay, (0, 0))

        panel_w, panel_h = 360, 120 + 60 * len(buttons)
        panel_rect = pygame.Rect((WINDOW_W - panel_w) // 2, 200, panel_w, panel_h)
        pygame.draw.rect(self.screen, PANEL_BG, panel_rect, border_radius=12)
        pygame.draw.rect(self.screen, PANEL_BORDER, panel_rect, width=1, border_radius=12)

        title_s = self.big_font.render(title, True, title_color)
        self.screen.blit(title_s, (panel_rect.centerx - title_s.get_width() // 2, panel_rect.y + 24))
        sub_s = self.font.render(subtitle, True, SUBTLE_TEXT)
        self.screen.blit(sub_s, (panel_rect.centerx - sub_s.get_width() // 2, panel_rect.y + 66))

        rects = []
        for i, text in enumerate(buttons):
            rect = pygame.Rect(panel_rect.x + 40, panel_rect.y + 110 + i * 60, panel_w - 80, 44)
            self._draw_button(rect, text)
            rects.append(rect)
        return rects

    def _draw(self):
        game = self.game
        self.screen.fill(BG_COLOR)

        # HUD: level, moves, mystery marker
        hud_rect = pygame.Rect(16, 16, 320, 76)
        pygame.draw.rect(self.screen, INFO_BG, hud_rect, border_radius=8)
        pygame.draw.rect(self.screen, PANEL_BORDER, hud_rect, width=1, border_radius=8)
        txt = self.big_font.render(f"Level {game.level}", True, TEXT_COLOR)
        self.screen.blit(txt, (hud_rect.x + 12, hud_rect.y + 10))
        moves = self.font.render(f"Moves: {game.state.move_count}   {game.message}", True, SUBTLE_TEXT)
        self.screen.blit(moves, (hud_rect.x + 12, hud_rect.y + 46))
        if game.state.special:
            special = self.font.render("Mystery Level", True, SPECIAL_TEXT)
            self.screen.blit(special, (WINDOW_W - special.get_width() - 24, hud_rect.y + 10))

        # bottom row: Undo / Reset / Restart / + Glass
        btn_h, btn_w, gap = 48, 160, 24
        y = WINDOW_H - 16 - btn_h
        x0 = (WINDOW_W - (4 * btn_w + 3 * gap)) // 2
        self.btn_undo_rect = pygame.Rect(x0, y, btn_w, btn_h)
        self.btn_reset_rect = pygame.Rect(x0 + (btn_w + gap), y, btn_w, btn_h)
        self.btn_restart_rect = pygame.Rect(x0 + 2 * (btn_w + gap), y, btn_w, btn_h)
        self.btn_glass_rect = pygame.Rect(x0 + 3 * (btn_w + gap), y, btn_w, btn_h)
        remaining = MAX_EXTRA_BOTTLES - game.state.extra_bottles_used
        self._draw_button(self.btn_undo_rect, "Undo", bool(game.history))
        self._draw_button(self.btn_reset_rect, "Reset")
        self._draw_button(self.btn_restart_rect, "Restart")
        self._draw_button(self.btn_glass_rect, f"+ Glass ({remaining})", remaining > 0)

        positions, _ = self._compute_grid_layout()
        slot_h = self._slot_height()
        for d, b in zip(positions, game.bottles):
            lift = LIFT_OFFSET if game.selected == d["idx"] else 0
            self._draw_bottle(d["idx"], b, d["x"], d["y"] + lift, slot_h)

        self.btn_next_rect = self.btn_exit_rect = self.btn_close_rect = None
        if game.win:
            self.btn_next_rect, self.btn_exit_rect = self._draw_overlay_panel(
                "You Win!", WIN_TEXT, f"Completed in {game.state.move_count} moves",
                ["Next Level", "Exit"])
        elif game.stuck and not self.stuck_dismissed:
            self.btn_restart_rect, self.btn_close_rect = self._draw_overlay_panel(
                "No Moves Left!", STUCK_TEXT, "You can reset the level or keep looking.",
                ["Reset Level", "Close"])

        pygame.display.flip()


# ===================== Entry point ===================== #
def main():
    game = Game.load(SAVE_PATH)
    view = View(game)
    view.run()


if __name__ == "__main__":
    main()
