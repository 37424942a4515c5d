"""
ECG Stream – real-time single-lead ECG metrics over WebSocket.

Each connected client streams raw ADC readings; every reading comes back
as a cleaned waveform value plus heart rate, HRV (RMSSD) and an
approximate QRS width.
"""

__version__ = "0.1.0"
__author__ = "ecg_stream"
