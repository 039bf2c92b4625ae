from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import orjson

from domain.models import DataFormat


@dataclass(frozen=True)
class SampleDataset:
    id: str
    name: str
    description: str
    data: Dict[str, Any]

    def to_text(self, data_format: DataFormat = DataFormat.JSON) -> str:
        if data_format is DataFormat.JSON:
            return orjson.dumps(self.data, option=orjson.OPT_INDENT_2).decode("utf-8")
        delimiter = "," if data_format is DataFormat.CSV else "\t"
        lines = [delimiter.join(("source", "target", "value"))]
        for link in self.data["links"]:
            lines.append(delimiter.join((link["source"], link["target"], _number(link["value"]))))
        return "\n".join(lines) + "\n"


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


SAMPLE_DATASETS: List[SampleDataset] = [
    SampleDataset(
        id="energy-flow",
        name="Energy flow",
        description="Energy moving from production sources to consumers",
        data={
            "nodes": [
                {"id": "coal", "name": "Coal", "value": 100},
                {"id": "gas", "name": "Natural gas", "value": 80},
                {"id": "solar", "name": "Solar", "value": 30},
                {"id": "power", "name": "Power grid", "value": 150},
                {"id": "industry", "name": "Industry", "value": 70},
                {"id": "residential", "name": "Residential", "value": 50},
                {"id": "commercial", "name": "Commercial", "value": 30},
            ],
            "links": [
                {"source": "coal", "target": "power", "value": 100},
                {"source": "gas", "target": "power", "value": 50},
                {"source": "gas", "target": "industry", "value": 30},
                {"source": "solar", "target": "power", "value": 30},
                {"source": "power", "target": "industry", "value": 40},
                {"source": "power", "target": "residential", "value": 50},
                {"source": "power", "target": "commercial", "value": 30},
            ],
        },
    ),
    SampleDataset(
        id="user-journey",
        name="User journey",
        description="Visitor paths through a web shop",
        data={
            "nodes": [
                {"id": "homepage", "name": "Homepage", "value": 1000},
                {"id": "product", "name": "Product page", "value": 600},
                {"id": "search", "name": "Search", "value": 300},
                {"id": "cart", "name": "Cart", "value": 400},
                {"id": "checkout", "name": "Checkout", "value": 200},
                {"id": "success", "name": "Success", "value": 150},
                {"id": "exit", "name": "Exit", "value": 550},
            ],
            "links": [
                {"source": "homepage", "target": "product", "value": 400},
                {"source": "homepage", "target": "search", "value": 300},
                {"source": "homepage", "target": "exit", "value": 300},
                {"source": "product", "target": "cart", "value": 300},
                {"source": "product", "target": "exit", "value": 100},
                {"source": "search", "target": "product", "value": 200},
                {"source": "search", "target": "exit", "value": 100},
                {"source": "cart", "target": "checkout", "value": 200},
                {"source": "cart", "target": "exit", "value": 100},
                {"source": "checkout", "target": "success", "value": 150},
                {"source": "checkout", "target": "exit", "value": 50},
            ],
        },
    ),
    SampleDataset(
        id="budget-allocation",
        name="Budget allocation",
        description="Yearly budget split across departments and cost types",
        data={
            "nodes": [
                {"id": "budget", "name": "Total budget"},
                {"id": "engineering", "name": "Engineering"},
                {"id": "marketing", "name": "Marketing"},
                {"id": "operations", "name": "Operations"},
                {"id": "salaries", "name": "Salaries"},
                {"id": "tools", "name": "Tools"},
                {"id": "campaigns", "name": "Campaigns"},
            ],
            "links": [
                {"source": "budget", "target": "engineering", "value": 500},
                {"source": "budget", "target": "marketing", "value": 250},
                {"source": "budget", "target": "operations", "value": 150},
                {"source": "engineering", "target": "salaries", "value": 400},
                {"source": "engineering", "target": "tools", "value": 100},
                {"source": "marketing", "target": "salaries", "value": 100},
                {"source": "marketing", "target": "campaigns", "value": 150},
                {"source": "operations", "target": "salaries", "value": 90},
                {"source": "operations", "target": "tools", "value": 60},
            ],
        },
    ),
]


def get_sample(sample_id: str) -> SampleDataset:
    for dataset in SAMPLE_DATASETS:
        if dataset.id == sample_id:
            return dataset
    raise KeyError(sample_id)
