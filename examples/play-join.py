from tidyground import Table

table1 = Table.open_csv("data/table1.csv")
continents = Table.open_csv("data/continents.csv")

for how in ("left", "right", "inner", "full", "semi", "anti"):
    print(f"--- {how} join")
    print(table1.join(continents, on={"country": "name"}, how=how))
