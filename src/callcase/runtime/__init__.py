"""Runtime support shared by the dispatcher, HTTP adapter and generator."""
