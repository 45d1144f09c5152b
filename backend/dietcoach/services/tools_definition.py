COACH_TOOLS_DEFINITION = [
    {
        "type": "function",
        "function": {
            "name": "logWaterIntake",
            "description": "Log and save the water intake by User",
            "parameters": {
                "type": "object",
                "properties": {
                    "amount": {"type": "number", "exclusiveMinimum": 0, "description": "Amount of water consumed."},
                    "unit": {"type": "string", "enum": ["ml", "oz"], "description": "Defaults to 'ml'."},
                    "consumedAt": {"type": "string", "format": "date-time", "description": "When the water was consumed, ISO format. Defaults to now."},
                    "notes": {"type": "string", "description": "Optional notes, e.g. 'after workout'."},
                    "source": {"type": "string", "enum": ["manual", "app", "device"], "description": "Defaults to 'app'."}
                },
                "required": ["amount"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "logCaloriesIntake",
            "description": "Log and save the calories and other macros like carbs, proteins and fats intake by User",
            "parameters": {
                "type": "object",
                "properties": {
                    "calories": {"type": "number", "exclusiveMinimum": 0},
                    "carbs": {"type": "number", "exclusiveMinimum": 0, "description": "Carbohydrates in grams."},
                    "proteins": {"type": "number", "exclusiveMinimum": 0, "description": "Proteins in grams."},
                    "fats": {"type": "number", "exclusiveMinimum": 0, "description": "Fats in grams."},
                    "foodItem": {"type": "string", "minLength": 1, "maxLength": 128, "description": "Name of the food or dish."},
                    "quantity": {"type": "number", "exclusiveMinimum": 0, "description": "Quantity consumed, e.g. 1.5."},
                    "unit": {"type": "string", "maxLength": 32, "description": "Unit of quantity, e.g. 'cup', 'piece', 'gram'."},
                    "mealType": {"type": "string", "enum": ["breakfast", "lunch", "dinner", "snack"], "description": "Defaults to 'snack'."},
                    "consumedAt": {"type": "string", "format": "date-time", "description": "When the food was eaten, ISO format. Defaults to now."},
                    "notes": {"type": "string"},
                    "source": {"type": "string", "enum": ["manual", "app", "barcode"], "description": "Defaults to 'app'."}
                },
                "required": ["calories", "carbs", "proteins", "fats", "foodItem"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "searchUserMemoryTool",
            "description": "Search and retrieve stored memories about a user for personalized conversation context",
            "parameters": {
                "type": "object",
                "properties": {}
            }
        }
    },
]


def tool_names():
    return [t["function"]["name"] for t in COACH_TOOLS_DEFINITION]
