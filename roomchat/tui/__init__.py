"""Chat client pieces: application state, the state store, termination, an input box and the connect page."""