#!/usr/bin/env python3
"""
Harmonic Pattern Detector - Main Entry Point

Usage:
    python main.py scan --data ES-4h.csv --symbol "ES 12-25"
    python main.py scan --data ES-4h.csv --strategy projected --visibility-days 0
    python main.py pivots --data ES-4h.csv --lookback 2 --limit 20
"""

if __name__ == "__main__":
    from src.cli.main import main
    main()
