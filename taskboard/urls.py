"""URL configuration for the task board API."""

from rest_framework.routers import SimpleRouter

from .api import SubtaskViewSet, TaskPriorityOptionViewSet, TaskStatusOptionViewSet, TaskViewSet

router = SimpleRouter()
router.register(r"tasks", TaskViewSet, basename="task")
router.register(r"subtasks", SubtaskViewSet, basename="subtask")
router.register(r"task-status-options", TaskStatusOptionViewSet, basename="task-status-option")
router.register(r"task-priority-options", TaskPriorityOptionViewSet, basename="task-priority-option")

urlpatterns = router.urls
