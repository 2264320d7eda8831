"""
Sample program records shared by the report tests.

Payloads use the camelCase keys of the source system so the tests also
exercise RecordSet.from_dict parsing.
"""
from typing import Any, Dict, List

CODE_TABLE: Dict[str, Dict[str, Dict[str, str]]] = {
    "MOOE": {
        "Training Expenses": {"50202010": "Training Expenses"},
        "Supplies and Materials Expenses": {
            "50203010": "Office Supplies Expenses",
            "50203090": "Agricultural and Marine Supplies Expenses",
        },
        "Salaries & Wages": {"50101010": "Salaries and Wages - Regular"},
    },
    "CO": {
        "Machinery and Equipment Outlay": {
            "10605030": "Information and Communication Technology Equipment",
            "10605020": "Office Equipment",
        },
    },
}


def subproject(
    record_id: str,
    package: str = "Package 1",
    due: str = "2024-03-15",
    **overrides: Any,
) -> Dict[str, Any]:
    data = {
        "id": record_id,
        "name": f"Subproject {record_id}",
        "operatingUnit": "RPMO 4A",
        "fundingYear": 2024,
        "fundType": "Current",
        "tier": "Tier 1",
        "packageType": package,
        "location": "Brgy. Malaya, Pililla, Rizal",
        "indigenousPeopleOrganization": "Dumagat Farmers Association",
        "status": "Ongoing",
        "estimatedCompletionDate": due,
        "details": [
            {
                "type": "Livestock",
                "particulars": "carabao",
                "unitOfMeasure": "heads",
                "pricePerUnit": 50000,
                "numberOfUnits": 2,
                "actualNumberOfUnits": 1,
                "objectType": "MOOE",
                "expenseParticular": "Supplies and Materials Expenses",
                "uacsCode": "50203090",
                "obligationMonth": "2024-02-01",
                "disbursementMonth": "2024-04-01",
                "actualObligationDate": "2024-02-10",
                "actualObligationAmount": 100000,
                "actualDisbursementDate": "2024-04-20",
                "actualDisbursementAmount": 60000,
            },
        ],
    }
    data.update(overrides)
    return data


def training(record_id: str, component: str = "Social Preparation", date: str = "2024-05-10", **overrides: Any) -> Dict[str, Any]:
    data = {
        "id": record_id,
        "name": f"Training {record_id}",
        "operatingUnit": "RPMO 4A",
        "fundingYear": 2024,
        "fundType": "Current",
        "tier": "Tier 2",
        "component": component,
        "date": date,
        "location": "Tanay, Rizal",
        "participatingIpos": ["Dumagat Farmers Association"],
        "participantsMale": 10,
        "participantsFemale": 15,
        "expenses": [
            {
                "objectType": "MOOE",
                "expenseParticular": "Training Expenses",
                "uacsCode": "50202010",
                "amount": 25000,
                "obligationMonth": "2024-05-01",
                "disbursementMonth": "2024-06-01",
            },
        ],
    }
    data.update(overrides)
    return data


def other_activity(record_id: str, component: str = "Marketing and Enterprise", **overrides: Any) -> Dict[str, Any]:
    data = training(record_id, component=component, date="2024-08-20")
    data["name"] = f"Market Linkage {record_id}"
    data.update(overrides)
    return data


def staffing(record_id: str, **overrides: Any) -> Dict[str, Any]:
    data = {
        "id": record_id,
        "operatingUnit": "RPMO 4A",
        "fundYear": 2024,
        "fundType": "Current",
        "personnelPosition": "Project Development Officer II",
        "annualSalary": 480000,
        "uacsCode": "50101010",
        "obligationDate": "2024-01-15",
        "disbursementDate": "2024-01-31",
    }
    data.update(overrides)
    return data


def office(record_id: str, **overrides: Any) -> Dict[str, Any]:
    data = {
        "id": record_id,
        "operatingUnit": "RPMO 4A",
        "fundYear": 2024,
        "fundType": "Current",
        "equipment": "Laptop",
        "pricePerUnit": 60000,
        "numberOfUnits": 3,
        "uacsCode": "10605030",
        "obligationDate": "2024-07-01",
        "disbursementDate": "2024-08-01",
    }
    data.update(overrides)
    return data


def other_expense(record_id: str, **overrides: Any) -> Dict[str, Any]:
    data = {
        "id": record_id,
        "operatingUnit": "RPMO 4A",
        "fundYear": 2024,
        "fundType": "Current",
        "particulars": "Internet Subscription",
        "amount": 12000,
        "uacsCode": "50299999",
        "obligationDate": "2024-02-01",
        "disbursementDate": "2024-02-28",
    }
    data.update(overrides)
    return data


def payload(**kinds: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Record payload with empty arrays for kinds not given."""
    result: Dict[str, Any] = {
        "subprojects": [],
        "trainings": [],
        "otherActivities": [],
        "staffingReqs": [],
        "officeReqs": [],
        "otherProgramExpenses": [],
        "ipos": [],
    }
    result.update(kinds)
    return result


def full_payload() -> Dict[str, Any]:
    """One or more records of every kind, all in 2024 under RPMO 4A."""
    return payload(
        subprojects=[
            subproject("SP-1", due="2024-03-15"),
            subproject("SP-2", due="2024-06-01", packageType="Package 2"),
            subproject("SP-3", due="2024-06-30", packageType="Package 10"),
        ],
        trainings=[
            training("TR-1"),
            training("TR-2", component="Production and Livelihood"),
            training("TR-3", component="Program Management"),
        ],
        otherActivities=[other_activity("OA-1")],
        staffingReqs=[staffing("ST-1")],
        officeReqs=[office("OF-1")],
        otherProgramExpenses=[other_expense("OE-1")],
        ipos=[
            {"name": "Dumagat Farmers Association", "ancestralDomainNo": "AD-4A-001", "location": "Tanay, Rizal"},
        ],
    )
