"""Terminal display board"""
