from .quantity import MAX_QUANTITY, QUANTITY_STEP, quantize_qty

__all__ = ["MAX_QUANTITY", "QUANTITY_STEP", "quantize_qty"]
