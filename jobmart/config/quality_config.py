"""Data Quality configuration"""
import os

# Staging batch thresholds
DQ_MIN_ROWS = int(os.getenv("DQ_MIN_ROWS", "1"))
DQ_MAX_DUPLICATE_RATE = float(os.getenv("DQ_MAX_DUPLICATE_RATE", "0.50"))
DQ_SUCCESS_THRESHOLD = float(os.getenv("DQ_SUCCESS_THRESHOLD", "0.95"))
DQ_WARNING_THRESHOLD = float(os.getenv("DQ_WARNING_THRESHOLD", "0.50"))
