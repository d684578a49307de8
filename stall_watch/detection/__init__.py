from .stall import DEFAULT_DEVICE_LABEL, MIN_SAMPLES, extract_device_id, is_stalled, stalled_devices

__all__ = ["DEFAULT_DEVICE_LABEL", "MIN_SAMPLES", "extract_device_id", "is_stalled", "stalled_devices"]
