"""Pure calculation libraries: instruments, calculations, trades, performance."""
