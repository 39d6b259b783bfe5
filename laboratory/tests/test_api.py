"""
Integration tests for the laboratory API.

These tests exercise the request lifecycle over HTTP including role
checks, workload accounting through the request update endpoint,
technician selection and the ``{"error": ...}`` error contract.  They
use Django REST Framework's APIClient within the APITestCase base class.

To run the tests:

```
pytest -q laboratory/tests
```
"""
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import AuditEvent, LabDashboard, LabTechnician, LabTest, LabTestRequest, User


class LabAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username="admin1", password="adminpass", role="ADMIN")
        self.doctor = User.objects.create_user(username="doctor1", password="docpass", role="DOCTOR",
                                               first_name="Gregory", last_name="House")
        self.patient = User.objects.create_user(username="patient1", password="patpass", role="PATIENT",
                                                email="p1@example.com")
        self.tech_user = User.objects.create_user(username="labtech1", password="techpass", role="LABTECH")
        self.tech_user2 = User.objects.create_user(username="labtech2", password="techpass", role="LABTECH")

        self.cbc = LabTest.objects.create(name="Complete Blood Count", category="HEMATOLOGY",
                                          price=Decimal("25.00"), duration=30, sample_type="BLOOD")
        self.tsh = LabTest.objects.create(name="TSH", category="ENDOCRINOLOGY",
                                          price=Decimal("30.00"), duration=90, sample_type="BLOOD")

        self.tech = LabTechnician.objects.create(user=self.tech_user, employee_id="LT001",
                                                 specialization=["HEMATOLOGY"], max_concurrent_tests=2,
                                                 performance_score=80)
        self.tech2 = LabTechnician.objects.create(user=self.tech_user2, employee_id="LT002",
                                                  specialization=["HEMATOLOGY", "ENDOCRINOLOGY"],
                                                  max_concurrent_tests=3, performance_score=95)

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def _new_request(self, **kwargs) -> LabTestRequest:
        kwargs.setdefault("patient", self.patient)
        kwargs.setdefault("doctor", self.doctor)
        kwargs.setdefault("test", self.cbc)
        return LabTestRequest.objects.create(**kwargs)

    # -- auth and error contract ------------------------------------------

    def test_requests_require_authentication(self):
        response = APIClient().get("/api/lab/lab-test-requests")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(set(response.json()), {"error"})

    def test_patient_cannot_order_tests(self):
        client = self.authenticate(self.patient)
        response = client.post("/api/lab/lab-test-requests",
                               {"patient": self.patient.id, "test": self.cbc.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn("error", response.data)

    def test_missing_request_is_404(self):
        client = self.authenticate(self.doctor)
        response = client.get("/api/lab/lab-test-requests/9999")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {"error": "Test request not found"})

    def test_validation_errors_are_joined(self):
        client = self.authenticate(self.doctor)
        response = client.post("/api/lab/lab-test-requests", {"priority": "URGENT"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        message = response.data["error"]
        self.assertIn("patient:", message)
        self.assertIn("test:", message)
        self.assertIn("priority:", message)

    # -- request lifecycle ------------------------------------------------

    def test_doctor_creates_request(self):
        client = self.authenticate(self.doctor)
        response = client.post(
            "/api/lab/lab-test-requests",
            {"patientId": self.patient.id, "testId": self.cbc.id, "priority": "STAT",
             "notes": "<b>fasting</b> sample"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.data["testRequest"]
        self.assertEqual(body["status"], "REQUESTED")
        self.assertEqual(body["priority"], "STAT")
        self.assertEqual(body["doctor"]["id"], self.doctor.id)
        self.assertEqual(body["patient"]["email"], "p1@example.com")
        self.assertEqual(body["test"]["name"], "Complete Blood Count")
        self.assertEqual(body["notes"], "fasting sample")
        self.assertIsNone(body["turnaroundTime"])
        self.assertFalse(body["isOverdue"])
        self.assertTrue(AuditEvent.objects.filter(action="lab_request_create", object_id=body["id"]).exists())

    def test_request_for_non_patient_or_inactive_test_is_rejected(self):
        client = self.authenticate(self.doctor)
        response = client.post("/api/lab/lab-test-requests",
                               {"patient": self.doctor.id, "test": self.cbc.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.tsh.is_active = False
        self.tsh.save()
        response = client.post("/api/lab/lab-test-requests",
                               {"patient": self.patient.id, "test": self.tsh.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Lab test not found or inactive", response.data["error"])

    def test_status_updates_keep_workload_in_sync(self):
        req = self._new_request()
        client = self.authenticate(self.tech_user)
        url = f"/api/lab/lab-test-requests/{req.id}"

        response = client.patch(url, {"labTechnician": self.tech.id, "status": "SAMPLE_COLLECTED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["testRequest"]["labTechnician"]["employeeId"], "LT001")
        self.assertIsNotNone(response.data["testRequest"]["sampleCollectedDate"])
        self.tech.refresh_from_db()
        self.assertEqual(self.tech.current_workload, 1)

        client.patch(url, {"status": "IN_PROGRESS"}, format="json")
        self.tech.refresh_from_db()
        self.assertEqual(self.tech.current_workload, 1)

        response = client.patch(url, {"status": "COMPLETED", "results": "Hb 13.5", "isCritical": True},
                                format="json")
        body = response.data["testRequest"]
        self.assertEqual(body["status"], "COMPLETED")
        self.assertEqual(body["results"], "Hb 13.5")
        self.assertTrue(body["isCritical"])
        self.assertIsNotNone(body["turnaroundTime"])
        self.tech.refresh_from_db()
        self.assertEqual(self.tech.current_workload, 0)

    def test_reassignment_moves_workload(self):
        req = self._new_request(lab_technician=self.tech, status="IN_PROGRESS")
        self.tech.update_workload()
        client = self.authenticate(self.admin)
        response = client.patch(f"/api/lab/lab-test-requests/{req.id}", {"technicianId": self.tech2.id},
                                format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.tech.refresh_from_db()
        self.tech2.refresh_from_db()
        self.assertEqual((self.tech.current_workload, self.tech2.current_workload), (0, 1))

    def test_assigning_full_technician_is_rejected(self):
        for _ in range(2):
            self._new_request(lab_technician=self.tech, status="IN_PROGRESS")
        self.tech.update_workload()
        req = self._new_request()
        client = self.authenticate(self.admin)
        response = client.patch(f"/api/lab/lab-test-requests/{req.id}", {"labTechnician": self.tech.id},
                                format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("maximum workload", response.data["error"])
        req.refresh_from_db()
        self.assertIsNone(req.lab_technician_id)

    def test_activating_request_of_full_technician_is_rejected(self):
        for _ in range(2):
            self._new_request(lab_technician=self.tech, status="SAMPLE_COLLECTED")
        self.tech.update_workload()
        req = self._new_request(lab_technician=self.tech)
        client = self.authenticate(self.tech_user)
        response = client.patch(f"/api/lab/lab-test-requests/{req.id}", {"status": "SAMPLE_COLLECTED"},
                                format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        req.refresh_from_db()
        self.assertEqual(req.status, "REQUESTED")
        self.tech.refresh_from_db()
        self.assertEqual(self.tech.current_workload, 2)

    def test_invalid_transition_is_400(self):
        req = self._new_request()
        client = self.authenticate(self.tech_user)
        response = client.patch(f"/api/lab/lab-test-requests/{req.id}", {"status": "COMPLETED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Cannot change status from REQUESTED to COMPLETED")

    def test_list_filters(self):
        self._new_request(status="IN_PROGRESS", lab_technician=self.tech)
        self._new_request(priority="STAT", requested_date=timezone.now() - timedelta(hours=3))
        self._new_request(status="COMPLETED", test=self.tsh)
        client = self.authenticate(self.doctor)

        response = client.get("/api/lab/lab-test-requests", {"technicianId": self.tech.id})
        self.assertEqual(len(response.data["requests"]), 1)
        response = client.get("/api/lab/lab-test-requests", {"status": "COMPLETED"})
        self.assertEqual([r["test"]["name"] for r in response.data["requests"]], ["TSH"])
        response = client.get("/api/lab/lab-test-requests", {"overdue": "true"})
        self.assertEqual([r["priority"] for r in response.data["requests"]], ["STAT"])
        response = client.get("/api/lab/lab-test-requests", {"patientId": self.patient.id})
        self.assertEqual(len(response.data["requests"]), 3)

    # -- technicians and workload ----------------------------------------

    def test_workload_endpoint_scenario(self):
        client = self.authenticate(self.tech_user)
        url = f"/api/lab/lab-technicians/{self.tech.id}/workload"
        for _ in range(2):
            self.assertEqual(client.post(url, {"action": "assign"}, format="json").status_code, 200)
        response = client.post(url, {"action": "assign"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Technician has reached maximum workload")

        response = client.post(url, {"action": "complete"}, format="json")
        self.assertEqual(response.data["technician"]["currentWorkload"], 1)
        self.assertEqual(response.data["message"], "Workload completed successfully")

        snapshot = client.get(url).data
        self.assertEqual(snapshot["technician"]["currentWorkload"], 1)
        self.assertEqual(snapshot["availableSlots"], 1)
        self.assertTrue(snapshot["canAcceptMore"])
        self.assertEqual(snapshot["activeTests"], 0)

        response = client.post(url, {"action": "update"}, format="json")
        self.assertEqual(response.data["technician"]["currentWorkload"], 0)

    def test_workload_invalid_action(self):
        client = self.authenticate(self.tech_user)
        response = client.post(f"/api/lab/lab-technicians/{self.tech.id}/workload", {"action": "drop"},
                               format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid action. Use "assign", "complete", or "update"', response.data["error"])

    def test_workload_of_unknown_technician_is_404(self):
        client = self.authenticate(self.tech_user)
        response = client.get("/api/lab/lab-technicians/9999/workload")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"], "Lab technician not found")

    def test_available_technicians_sorted_by_load_then_score(self):
        LabTechnician.objects.filter(pk=self.tech2.pk).update(current_workload=1)
        client = self.authenticate(self.doctor)

        response = client.get("/api/lab/lab-technicians/available/HEMATOLOGY", {"includeWorkload": "true"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t["employeeId"] for t in response.data["technicians"]], ["LT001", "LT002"])
        self.assertEqual(response.data["totalAvailable"], 2)
        self.assertIn("currentWorkload", response.data["technicians"][0])

        response = client.get(f"/api/lab/lab-technicians/available/{self.tsh.id}")
        self.assertEqual(response.data["specialization"], "ENDOCRINOLOGY")
        self.assertEqual([t["employeeId"] for t in response.data["technicians"]], ["LT002"])
        self.assertNotIn("currentWorkload", response.data["technicians"][0])

    def test_available_post_assigns_technician(self):
        client = self.authenticate(self.doctor)
        response = client.post("/api/lab/lab-technicians/available/HEMATOLOGY",
                               {"technicianId": self.tech.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["action"], "assign")
        self.assertEqual(response.data["technician"]["currentWorkload"], 1)

        lab_client = self.authenticate(self.tech_user)
        response = lab_client.post("/api/lab/lab-technicians/available/HEMATOLOGY",
                                   {"technicianId": self.tech.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_onboards_and_deactivates_technician(self):
        new_user = User.objects.create_user(username="labtech3", password="techpass", role="LABTECH")
        client = self.authenticate(self.admin)
        response = client.post(
            "/api/lab/lab-technicians",
            {"user": new_user.id, "employeeId": "lt003", "specialization": ["URINALYSIS"],
             "yearsOfExperience": 4, "licenseNumber": "LIC-9", "licenseExpiry": "2030-01-01"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        tech_id = response.data["technician"]["id"]
        self.assertEqual(response.data["technician"]["employeeId"], "LT003")
        self.assertTrue(LabDashboard.objects.filter(lab_technician_id=tech_id).exists())

        duplicate = client.post("/api/lab/lab-technicians",
                                {"user": self.patient.id, "employeeId": "LT003", "yearsOfExperience": 1},
                                format="json")
        self.assertEqual(duplicate.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Employee ID or user already exists", duplicate.data["error"])

        response = client.delete(f"/api/lab/lab-technicians/{tech_id}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["technician"]["isActive"])
        ids = [t["id"] for t in client.get("/api/lab/lab-technicians").data["technicians"]]
        self.assertNotIn(tech_id, ids)

    def test_license_number_requires_expiry(self):
        client = self.authenticate(self.tech_user)
        response = client.patch(f"/api/lab/lab-technicians/{self.tech.id}", {"licenseNumber": "LIC-1"},
                                format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("License expiry date is required", response.data["error"])

    def test_capacity_cannot_drop_below_current_workload(self):
        for _ in range(3):
            self.tech2.assign_test()
        client = self.authenticate(self.admin)
        url = f"/api/lab/lab-technicians/{self.tech2.id}"
        response = client.patch(url, {"maxConcurrentTests": 1}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("maxConcurrentTests", response.data["error"])
        self.tech2.refresh_from_db()
        self.assertEqual(self.tech2.max_concurrent_tests, 3)

        self.assertEqual(client.patch(url, {"maxConcurrentTests": 5}, format="json").status_code, 200)
        snapshot = client.get(f"{url}/workload").data
        self.assertEqual(snapshot["availableSlots"], 2)
        self.assertAlmostEqual(snapshot["technician"]["efficiency"], 60)

    def test_lab_tech_cannot_edit_colleague(self):
        client = self.authenticate(self.tech_user)
        response = client.patch(f"/api/lab/lab-technicians/{self.tech2.id}", {"shift": "NIGHT"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_doctor_cannot_onboard_technician(self):
        client = self.authenticate(self.doctor)
        response = client.post("/api/lab/lab-technicians", {"user": self.patient.id, "employeeId": "X1"},
                               format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # -- dashboards -------------------------------------------------------

    def test_technician_dashboard_recompute(self):
        self._new_request(lab_technician=self.tech, status="COMPLETED", completed_date=timezone.now())
        self._new_request(lab_technician=self.tech, status="REQUESTED")
        client = self.authenticate(self.admin)
        url = f"/api/lab/lab-technicians/{self.tech.id}/dashboard"

        body = client.get(url).data["dashboard"]
        self.assertEqual((body["totalTestsCompleted"], body["pendingTests"]), (1, 1))

        self._new_request(lab_technician=self.tech, status="VERIFIED", completed_date=timezone.now())
        self.assertEqual(client.get(url).data["dashboard"]["totalTestsCompleted"], 1)
        self.assertEqual(client.post(url).data["dashboard"]["totalTestsCompleted"], 2)

    def test_my_dashboard_is_for_lab_techs(self):
        response = self.authenticate(self.tech_user).get("/api/lab/dashboard")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["dashboard"]["labTechnicianId"], self.tech.id)
        self.assertEqual(response.data["workload"]["technician"]["id"], self.tech.id)

        response = self.authenticate(self.doctor).get("/api/lab/dashboard")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class LabCatalogTests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username="admin1", password="adminpass", role="ADMIN")
        self.tech_user = User.objects.create_user(username="labtech1", password="techpass", role="LABTECH")
        self.payload = {"name": "Lipid Panel", "category": "BIOCHEMISTRY", "price": "35.00",
                        "duration": 60, "sampleType": "BLOOD",
                        "preparationInstructions": "Fast for 12 hours"}

    def test_catalog_is_public_but_writes_need_roles(self):
        anon = APIClient()
        self.assertEqual(anon.get("/api/lab/lab-tests").status_code, status.HTTP_200_OK)
        self.assertEqual(anon.post("/api/lab/lab-tests", self.payload, format="json").status_code,
                         status.HTTP_401_UNAUTHORIZED)

        tech = APIClient()
        tech.force_authenticate(user=self.tech_user)
        self.assertEqual(tech.post("/api/lab/lab-tests", self.payload, format="json").status_code,
                         status.HTTP_403_FORBIDDEN)

    def test_create_duplicate_and_deactivate(self):
        client = APIClient()
        client.force_authenticate(user=self.admin)
        response = client.post("/api/lab/lab-tests", self.payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        test = response.data["test"]
        self.assertEqual(test["sampleType"], "BLOOD")
        self.assertEqual(test["price"], 35.0)

        response = client.post("/api/lab/lab-tests", self.payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Test name already exists in this category")

        response = client.delete(f"/api/lab/lab-tests/{test['id']}")
        self.assertFalse(response.data["test"]["isActive"])
        self.assertTrue(LabTest.objects.filter(pk=test["id"]).exists())
        self.assertEqual(client.get("/api/lab/lab-tests").data["tests"], [])
        self.assertEqual(len(client.get("/api/lab/lab-tests", {"activeOnly": "false"}).data["tests"]), 1)

    def test_lab_tech_patches_test(self):
        test = LabTest.objects.create(name="Urinalysis", category="URINALYSIS", price=Decimal("15"),
                                      duration=20, sample_type="URINE")
        client = APIClient()
        client.force_authenticate(user=self.tech_user)
        response = client.patch(f"/api/lab/lab-tests/{test.id}", {"duration": 25, "units": "n/a"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["test"]["duration"], 25)

        response = client.patch(f"/api/lab/lab-tests/{test.id}", {"duration": 0}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data["error"].startswith("duration:"))
