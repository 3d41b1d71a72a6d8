"""Document e-signature workflow"""
