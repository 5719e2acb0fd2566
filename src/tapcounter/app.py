"""DearPyGUI entry point: tap button, meter/method pickers and tempo readout.

Run with: `uv run python run_app.py`
"""

from __future__ import annotations

import threading


def main() -> None:
    """Launch the tap tempo window."""
    # Import locally to avoid hard dependency at import time
    from pathlib import Path

    import dearpygui.dearpygui as dpg

    # Initialize logging
    logs_dir = Path("logs")
    try:
        logs_dir.mkdir(exist_ok=True)
    except OSError:
        pass
    import logging

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "app.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )

    from .options import METER_OPTIONS, METHOD_OPTIONS, meter_option, method_option
    from .tracker import TempoTracker

    tracker = TempoTracker()

    # Set by tracker notifications (UI thread or timer thread), read by the frame callback
    dirty = threading.Event()
    dirty.set()
    tracker.subscribe(lambda op, names: dirty.set())

    dpg.create_context()
    dpg.create_viewport(title="Tap Tempo", width=420, height=360)

    primary_tag = "primary_window"
    tap_button = "tap_button"
    method_combo = "method_combo"

    def on_tap(sender, app_data, user_data):
        tracker.tap()

    def on_meter(sender, app_data, user_data):
        tracker.set_meter(meter_option(str(app_data)).meter)

    def on_method(sender, app_data, user_data):
        tracker.set_method(method_option(str(app_data)).method)

    def name_of_meter(meter) -> str:
        return next(o.name for o in METER_OPTIONS if o.meter == meter)

    def name_of_method(method) -> str:
        return next(o.name for o in METHOD_OPTIONS if o.method == method)

    with dpg.window(tag=primary_tag, label="Tap Tempo", width=400, height=340):
        dpg.add_button(
            label=tracker.status_label, tag=tap_button, width=-1, height=140, callback=on_tap
        )
        dpg.add_spacer(height=6)
        with dpg.group(horizontal=True):
            bpm_text = dpg.add_text("BPM: --")
            dpg.add_spacer(width=12)
            mpm_text = dpg.add_text("MPM: --")
        dpg.add_spacer(height=6)
        dpg.add_combo(
            [o.name for o in METER_OPTIONS],
            default_value=name_of_meter(tracker.meter),
            label="Meter",
            callback=on_meter,
        )
        dpg.add_combo(
            [o.name for o in METHOD_OPTIONS],
            default_value=name_of_method(tracker.method),
            label="Count by",
            tag=method_combo,
            callback=on_method,
        )

    def ui_update_callback() -> None:
        if not dirty.is_set():
            return
        dirty.clear()
        snap = tracker.snapshot()
        dpg.configure_item(tap_button, label=snap.status_label)
        dpg.set_value(bpm_text, f"BPM: {snap.bpm:.1f}")
        dpg.configure_item(mpm_text, show=snap.show_measure_controls)
        dpg.set_value(mpm_text, f"MPM: {snap.mpm:.1f}")
        dpg.configure_item(method_combo, show=snap.show_measure_controls)

    # Schedule periodic UI updates (~10 Hz) using frame callbacks
    def schedule_ui_updates(interval_frames: int = 6) -> None:
        def _tick() -> None:
            ui_update_callback()
            dpg.set_frame_callback(dpg.get_frame_count() + interval_frames, _tick)

        dpg.set_frame_callback(dpg.get_frame_count() + interval_frames, _tick)

    schedule_ui_updates()

    dpg.set_primary_window(primary_tag, True)
    dpg.setup_dearpygui()
    dpg.show_viewport()
    dpg.start_dearpygui()
    tracker.close()
    dpg.destroy_context()


if __name__ == "__main__":  # pragma: no cover - manual entry
    main()
