from tidyground.compute import CSVDataSource, LeftJoinNode, PivotLongerNode

query = PivotLongerNode(
    ["cases", "population"], "type", "count",
    LeftJoinNode(
        {"country": "name"},
        CSVDataSource("data/table1.csv"),
        CSVDataSource("data/continents.csv"),
    ),
)
for batch in query.batches():
    print("---")
    print(batch)
