# Walk the nodes in label order, highlighting one at a time.
order = sorted(graph.get_nodes(), key=graph.get_label)
prev = None
for n in order:
    if prev is not None:
        reset_color(prev)
    set_color(n, "#e6194bff")
    prev = n
    yield
if prev is not None:
    reset_color(prev)
