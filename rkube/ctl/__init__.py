"""Client helpers: an interactive exec session with a pod container."""