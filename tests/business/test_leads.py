"""LeadPipeline tests."""
import pytest

from business import BusinessRuleError, LeadPipeline


@pytest.fixture
def pipeline(memory_db):
    return LeadPipeline(memory_db)


class TestLeads:

    def test_create(self, pipeline, memory_db):
        lead = pipeline.create("Rhea", "9000012345", source="Instagram")
        assert lead["status"] == "New"
        assert lead["comments"] == []
        assert memory_db.leads.get_all() == [lead]

    def test_create_requires_name_and_phone(self, pipeline):
        with pytest.raises(BusinessRuleError):
            pipeline.create("", "9000012345")
        with pytest.raises(BusinessRuleError):
            pipeline.create("Rhea", " ")

    def test_comments(self, pipeline, memory_db):
        lead = pipeline.create("Rhea", "9000012345")
        comment = pipeline.add_comment(lead["id"], " Called, wants bridal quote ", author="Manager")
        assert comment["text"] == "Called, wants bridal quote"
        assert memory_db.leads.get_by_id(lead["id"])["comments"] == [comment]

    def test_blank_comment_rejected(self, pipeline, memory_db):
        lead = pipeline.create("Rhea", "9000012345")
        with pytest.raises(BusinessRuleError):
            pipeline.add_comment(lead["id"], "   ")
        assert memory_db.leads.get_by_id(lead["id"])["comments"] == []

    def test_set_status(self, pipeline):
        lead = pipeline.create("Rhea", "9000012345")
        assert pipeline.set_status(lead["id"], "Interested")["status"] == "Interested"
        with pytest.raises(ValueError):
            pipeline.set_status(lead["id"], "Maybe")

    def test_convert_creates_customer(self, pipeline, memory_db):
        lead = pipeline.create("Rhea", "9000012345", email="rhea@example.com")
        customer = pipeline.convert(lead["id"])
        assert customer["name"] == "Rhea"
        assert customer["phone"] == "9000012345"
        assert memory_db.customers.get_by_id(customer["id"]) is not None
        assert memory_db.leads.get_by_id(lead["id"])["status"] == "Converted"

    def test_convert_twice_rejected(self, pipeline, memory_db):
        lead = pipeline.create("Rhea", "9000012345")
        pipeline.convert(lead["id"])
        with pytest.raises(BusinessRuleError):
            pipeline.convert(lead["id"])
        assert memory_db.customers.count() == 1

    def test_by_status(self, pipeline):
        a = pipeline.create("A", "1")
        pipeline.create("B", "2")
        pipeline.set_status(a["id"], "Lost")
        assert [lead["name"] for lead in pipeline.by_status("Lost")] == ["A"]
