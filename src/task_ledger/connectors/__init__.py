"""
Transports that carry operation calls to the command registry:
console REPL and a Matrix room bot.
"""
