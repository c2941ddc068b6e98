"""Best-effort Web Push delivery for turn and status alerts."""
