"""
FinPulse
Business health semaphore and bank reconciliation engine.
"""
