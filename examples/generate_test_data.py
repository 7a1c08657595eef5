import csv
import os

if not os.path.exists("data"):
    os.mkdir("data")

# The tuberculosis tables, with the same data in different layouts.
TB = [
    ("Afghanistan", 1999, 745, 19987071),
    ("Afghanistan", 2000, 2666, 20595360),
    ("Brazil", 1999, 37737, 172006362),
    ("Brazil", 2000, 80488, 174504898),
    ("China", 1999, 212258, 1272915272),
    ("China", 2000, 213766, 1280428583),
]

if not os.path.exists("data/table1.csv"):
    # Wide: one column per measure
    with open("data/table1.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["country", "year", "cases", "population"])
        writer.writerows(TB)

if not os.path.exists("data/table2.csv"):
    # Long: one row per measure
    with open("data/table2.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["country", "year", "type", "count"])
        for country, year, cases, population in TB:
            writer.writerow([country, year, "cases", cases])
            writer.writerow([country, year, "population", population])

if not os.path.exists("data/continents.csv"):
    with open("data/continents.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "continent"])
        writer.writerows([("Afghanistan", "Asia"), ("Brazil", "Americas"), ("Italy", "Europe")])
