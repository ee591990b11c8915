from config import Config


def _require_window_attr(window, attr_name: str):
    try:
        return getattr(window, attr_name)
    except AttributeError as exc:
        raise AttributeError(
            f"persist_runtime_ui_to_config missing required control: {attr_name}"
        ) from exc


def persist_runtime_ui_to_config(window, config: Config) -> None:
    """Copy window size and device choices into config on shutdown."""
    input_device_combo = _require_window_attr(window, "input_device_combo")
    output_device_combo = _require_window_attr(window, "output_device_combo")
    width = _require_window_attr(window, "width")
    height = _require_window_attr(window, "height")

    config.audio.input_device_index = input_device_combo.currentData()
    config.audio.output_device_index = output_device_combo.currentData()

    config.window_width = int(width())
    config.window_height = int(height())
