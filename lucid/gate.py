"""
Suppression gate: decides whether any reminder may be shown right now.

All mutations of AppState happen on the Tk main thread. No locks needed.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SuppressionSignal:
    settings_focused: bool = False
    presentation_active: bool = False
    alerts_enabled: bool = True


def may_fire(signal: SuppressionSignal, is_preview: bool = False) -> bool:
    """Previews always pass; otherwise every veto must be clear."""
    if is_preview:
        return True
    return (not signal.settings_focused
            and not signal.presentation_active
            and signal.alerts_enabled)


@dataclass
class AppState:
    """Session flags fed by external detectors and windows."""
    settings_focused: bool = False
    presentation_active: bool = False

    def signal(self, cfg) -> SuppressionSignal:
        """Build the gate input for one tick from flags plus a config snapshot."""
        return SuppressionSignal(
            settings_focused=self.settings_focused,
            presentation_active=(self.presentation_active
                                 and cfg.disable_during_presentation),
            alerts_enabled=cfg.alerts_enabled,
        )
