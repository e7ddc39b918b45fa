# Reference data tables for TWINGUARD
