# Breadth-first search from the first node, one frontier per step.
nodes = graph.get_nodes()
if not nodes:
    return

for n in nodes:
    reset_color(n)
yield

start = nodes[0]
seen = {start}
frontier = [start]
set_color(start, "#ff8800")
yield

while frontier:
    nxt = []
    for u in frontier:
        set_color(u, "#3366ff")
        for v in graph.get_neighbours(u):
            if v not in seen:
                seen.add(v)
                nxt.append(v)
                set_color(v, "#ff8800")
    frontier = nxt
    yield

print("visited", len(seen), "of", graph.len(), "nodes")
