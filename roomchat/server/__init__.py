"""Chat server: rooms, user registries, sessions and the TCP listener."""