from tidyground import Table

table2 = Table.open_csv("data/table2.csv")

wide = table2.pivot_wider(names_from="type", values_from="count")
print(wide)

long = wide.pivot_longer(["cases", "population"], names_to="type", values_to="count")
print(long)
