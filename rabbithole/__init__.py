"""
Rabbit hole explorer: answer a query, branch on follow-up questions, and lay
the exploration out as a graph.
"""
